import json
import os
from collections.abc import AsyncIterator
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

# Settings are read at import time, so the test environment must exist first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")

import httpx
import pytest
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.core.cache import RedisCache, get_cache
from app.core.config import settings
from app.core.database import Base, get_db
from app.main import app as fastapi_app
from app.models.user.user import User, UserRole


class InMemoryCache:
    """Stand-in for RedisCache that keeps JSON-encoded values in a dict."""

    build_key = staticmethod(RedisCache.build_key)

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str, version: Optional[int] = None) -> Optional[Any]:
        if version is not None:
            key = f"{key}:v{version}"
        raw = self.data.get(key)
        return json.loads(raw) if raw else None

    async def set(self, key: str, value: Any, expire: int = 3600, version: Optional[int] = None) -> None:
        if version is not None:
            key = f"{key}:v{version}"
        self.data[key] = json.dumps(value, default=str)


@pytest.fixture
async def session_factory() -> AsyncIterator[sessionmaker]:
    """Fresh in-memory SQLite database per test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)

    await engine.dispose()


@pytest.fixture
async def db(session_factory) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def cache() -> InMemoryCache:
    return InMemoryCache()


async def _add_user(db: AsyncSession, username: str, role: UserRole = UserRole.general) -> User:
    user = User(email=f"{username}@example.com", username=username, role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def owner(db) -> User:
    return await _add_user(db, "marta")


@pytest.fixture
async def other_user(db) -> User:
    return await _add_user(db, "jorge")


@pytest.fixture
async def admin(db) -> User:
    return await _add_user(db, "admin", UserRole.admin)


def issue_access_token(user: User, expires_in: timedelta = timedelta(minutes=20)) -> str:
    """Sign a token the way the identity provider does."""
    claims = {"sub": str(user.id), "type": "access", "exp": datetime.utcnow() + expires_in}
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def _auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {issue_access_token(user)}"}


def _activity_payload(**overrides: Any) -> dict:
    """Valid activity submission, as the service receives it."""
    payload = {
        "title": "Morning walk by the river",
        "description": "An easy group walk, all paces welcome.",
        "activity_type": "Walking",
        "date": date(2024, 1, 1),
        "time": time(9, 30),
        "duration": 90,
        "location": "Riverside park entrance",
        "city": "Valencia",
        "address": "Passeig de l'Albereda 1",
        "max_participants": 12,
        "price": 0,
        "is_free": True,
        "contact_phone": "+34 600 000 000",
        "contact_email": None,
        "website": None,
        "age_min": 50,
        "age_max": 99,
        "difficulty_level": "beginner",
        "tags": ["outdoors", "social"],
        "images": [],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
async def client(session_factory, cache) -> AsyncIterator[httpx.AsyncClient]:
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_cache():
        yield cache

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_cache] = override_get_cache

    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def make_payload():
    return _activity_payload


@pytest.fixture
def headers_for():
    return _auth_headers
