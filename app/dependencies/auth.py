from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from app.models.user.user import User, UserRole
from app.core.database import get_db
from app.core.logger import logger
from app.core.security import decode_access_token

security = HTTPBearer()

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
):
    token = credentials.credentials

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        sub = payload.get("sub")
        if sub is None:
            raise credentials_exception
        user_id = int(sub)
    except (JWTError, ValueError):
        raise credentials_exception

    stmt = select(User).filter(User.id == user_id)
    result = await db.scalar(stmt)
    if result is None or not result.is_active:
        raise credentials_exception

    return result

def require_role(role: UserRole):
    async def role_checker(user: User = Depends(get_current_user)):
        if user.role != role:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only user with {role.value} role can access this route"
            )
        return user
    return role_checker

def ensure_owner_or_admin(owner_id: int, user: User, action: str = "modify") -> None:
    """Activities may only be edited or deleted by their owner or an admin."""
    if user.id != owner_id and not user.is_admin:
        logger.warning(f"User {user.id} tried to {action} an activity owned by {owner_id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} this activity"
        )
