# app/routes/__init__.py
from fastapi import APIRouter
from app.routes.activities import activity_routes
from app.routes.admin import activity_admin


api_router = APIRouter()

# Activity routes
api_router.include_router(activity_routes.router)

# Admin routes
api_router.include_router(activity_admin.router)
