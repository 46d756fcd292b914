import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from attendance_tracker.core.exceptions import ConstraintViolation, StoreError
from attendance_tracker.database import transaction
from attendance_tracker.models.user import User
from attendance_tracker.schemas.user_schema import OAuthProfile

# Setup logger
logger = logging.getLogger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    """
    Get user by ID.

    Args:
        db: Database session
        user_id: User ID

    Returns:
        User instance or None
    """
    try:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error querying user by ID {user_id}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> Optional[User]:
    try:
        result = await db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error querying user by external id {external_id}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e


async def get_or_create_user(db: AsyncSession, profile: OAuthProfile) -> User:
    """
    Find the user for an OAuth identity, creating it on first login.

    Args:
        db: Database session
        profile: Identity returned by the provider

    Returns:
        Existing or newly created User
    """
    user = await get_user_by_external_id(db, profile.external_id)
    if user:
        logger.debug(f"Found existing user for external id: {profile.external_id}")
        return user

    try:
        logger.info(f"Creating user for {profile.email}")
        user = User(external_id=profile.external_id, name=profile.name, email=profile.email)
        async with transaction(db):
            db.add(user)
        await db.refresh(user)
        return user

    except IntegrityError as e:
        logger.error(f"Constraint violation creating user {profile.email}: {str(e.orig)}", exc_info=True)
        raise ConstraintViolation(str(e.orig)) from e
    except SQLAlchemyError as e:
        logger.error(f"Database error creating user {profile.email}: {str(e)}", exc_info=True)
        raise StoreError(str(e)) from e
