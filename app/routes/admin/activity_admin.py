from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from app.models.user.user import User, UserRole
from app.core.database import get_db
from app.dependencies.auth import require_role
from app.schemas.activities.activity import ActivityResponse
from app.services.activities.series_service import SeriesService
from app.routes.activities.activity_routes import get_series_service

router = APIRouter(prefix="/admin/activities", tags=["Admin Activities"])

@router.get("/incomplete-series", response_model=List[ActivityResponse])
async def list_incomplete_series(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
    series_service: SeriesService = Depends(get_series_service)
):
    """Recurring parents whose instance write failed"""
    return await series_service.list_incomplete_series(db)

@router.delete("/incomplete-series/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cleanup_incomplete_series(
    activity_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.admin)),
    series_service: SeriesService = Depends(get_series_service)
):
    await series_service.cleanup_incomplete_series(db, current_user, activity_id)
