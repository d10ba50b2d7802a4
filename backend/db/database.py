import asyncio
import functools
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from core.config import settings
from core.errors import StorageUnavailable

DATABASE_URL = settings.database_url


class Base(DeclarativeBase):
    pass


def _connect_args(url: str) -> dict:
    # asyncpg bounds each statement too; its TimeoutError surfaces through storage_deadline
    if url.startswith("postgresql+asyncpg"):
        return {"command_timeout": settings.storage_timeout_seconds}
    return {}


engine = create_async_engine(
    DATABASE_URL,
    echo=settings.database_echo,
    pool_pre_ping=True,
    connect_args=_connect_args(DATABASE_URL),
)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


@asynccontextmanager
async def storage_deadline(seconds: Optional[float] = None):
    """Bound a block of storage round trips by the configured timeout.

    Raises StorageUnavailable instead of hanging when the database stops answering.
    """
    timeout = settings.storage_timeout_seconds if seconds is None else seconds
    try:
        async with asyncio.timeout(timeout):
            yield
    except TimeoutError as e:
        raise StorageUnavailable() from e


def with_storage_deadline(func):
    """Run an async storage function under ``storage_deadline()``."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        async with storage_deadline():
            return await func(*args, **kwargs)

    return wrapper


# Register every model on Base.metadata and re-export them for routers/services.
from .users import User  # noqa: E402,F401
from .unit import Unit  # noqa: E402,F401
from .storage_location import StorageLocation  # noqa: E402,F401
from .inventory import Item, Stocktaking, StockRecord  # noqa: E402,F401
