from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import Conflict, InvalidCredentials, NotFound, ValidationError
from core.logger import get_logger
from core.security import Role, hash_password, verify_password
from db.database import User, with_storage_deadline

logger = get_logger("users")


@with_storage_deadline
async def find_by_name(db: AsyncSession, name: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.name == name))
    return result.scalar_one_or_none()


@with_storage_deadline
async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


@with_storage_deadline
async def count_users(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(User))
    return int(result.scalar_one())


@with_storage_deadline
async def create_user(
    db: AsyncSession,
    name: str,
    password: str,
    role: Role = Role.USER,
    display_name: Optional[str] = None,
) -> User:
    name = (name or "").strip()
    if not name or not password:
        raise ValidationError("User name and password are required")

    if await find_by_name(db, name) is not None:
        raise Conflict("This user name is already taken")

    user = User(
        name=name,
        display_name=display_name,
        role=Role(role),
        hashed_password=hash_password(password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration of the same name
        await db.rollback()
        raise Conflict("This user name is already taken") from e
    await db.refresh(user)
    logger.info("Created user id=%s name=%r role=%s", user.id, user.name, user.role.value)
    return user


@with_storage_deadline
async def change_password(db: AsyncSession, user_id: int, old_password: str, new_password: str) -> None:
    if not old_password or not new_password:
        raise ValidationError("Both password fields are required")

    user = await get_user(db, user_id)
    if not verify_password(old_password, user.hashed_password):
        raise InvalidCredentials("Current password is incorrect")

    user.hashed_password = hash_password(new_password)
    await db.commit()
    logger.info("Password changed by user id=%s", user.id)


@with_storage_deadline
async def force_set_password(db: AsyncSession, user_id: int, new_password: str) -> None:
    """Reset a password without the old one. Callers must gate this to admins."""
    if not new_password:
        raise ValidationError("Password is required")

    user = await get_user(db, user_id)
    user.hashed_password = hash_password(new_password)
    await db.commit()
    logger.info("Password reset for user id=%s", user.id)
