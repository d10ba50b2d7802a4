import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.logger import get_logger
from core.security import Role
from db.database import Stocktaking, with_storage_deadline
from services.stocktakings import count_stocktakings
from services.users import count_users, create_user

logger = get_logger("bootstrap")

DEFAULT_STOCKTAKING_NAME = "Initial stocktaking"


@with_storage_deadline
async def seed_defaults(db: AsyncSession) -> None:
    """Seed the admin account and a first active stocktaking on an empty database."""
    if await count_users(db) == 0:
        await create_user(
            db,
            settings.default_admin_name,
            settings.default_admin_password,
            role=Role.ADMIN,
        )
        logger.info("Default admin user %r created", settings.default_admin_name)

    if await count_stocktakings(db) == 0:
        db.add(Stocktaking(name=DEFAULT_STOCKTAKING_NAME, date=datetime.date.today(), active=True))
        await db.commit()
        logger.info("Default stocktaking created")
