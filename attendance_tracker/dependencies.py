import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from attendance_tracker.crud.user import get_user_by_id
from attendance_tracker.database import database
from attendance_tracker.models.user import User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


async def get_db() -> AsyncSession:
    """
    Dependency function that yields db sessions
    """
    async with database.get_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_session_user(request: Request, db: AsyncSession) -> Optional[User]:
    user_id = request.session.get(SESSION_USER_KEY)
    if user_id is None:
        return None

    user = await get_user_by_id(db, int(user_id))
    if user is None:
        # Session refers to a user that no longer exists
        request.session.pop(SESSION_USER_KEY, None)
    return user


async def get_current_user(request: Request, db: AsyncSession = Depends(get_db)) -> User:
    """
    Dependency guarding /api routes: the signed-in user or 401.
    """
    user = await get_session_user(request, db)
    if user is None:
        logger.debug(f"Unauthenticated request to {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )
    return user
