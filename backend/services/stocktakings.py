"""
Stocktaking snapshots and their lifecycle.

Exactly one stocktaking is active at any committed point. Opening a new one
runs as a single transaction:

1. deactivate every stocktaking
2. insert the new stocktaking as active
3. optionally clone every record of a source stocktaking into it

and either all of it commits or none of it does.
"""
import datetime
from typing import List, Optional

from sqlalchemy import func, insert, select, update
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import NotFound, StorageError, StorageUnavailable, ValidationError
from core.logger import get_logger
from db.database import StockRecord, Stocktaking, storage_deadline, with_storage_deadline

logger = get_logger("stocktakings")

# Key for pg_advisory_xact_lock; serializes concurrent snapshot creation
STOCKTAKING_LOCK_KEY = 7_305_001


@with_storage_deadline
async def list_stocktakings(db: AsyncSession) -> List[Stocktaking]:
    result = await db.execute(
        select(Stocktaking).order_by(Stocktaking.date.desc(), Stocktaking.id.desc())
    )
    return list(result.scalars().all())


@with_storage_deadline
async def active_stocktaking(db: AsyncSession) -> Optional[Stocktaking]:
    result = await db.execute(select(Stocktaking).where(Stocktaking.active.is_(True)))
    return result.scalars().first()


@with_storage_deadline
async def get_stocktaking(db: AsyncSession, stocktaking_id: int) -> Stocktaking:
    stocktaking = await db.get(Stocktaking, stocktaking_id)
    if stocktaking is None:
        raise NotFound(f"Stocktaking with id {stocktaking_id} not found")
    return stocktaking


@with_storage_deadline
async def count_stocktakings(db: AsyncSession) -> int:
    result = await db.execute(select(func.count()).select_from(Stocktaking))
    return int(result.scalar_one())


@with_storage_deadline
async def deactivate_all(db: AsyncSession) -> None:
    """Set active=false on every row. Idempotent; does not commit."""
    await db.execute(update(Stocktaking).values(active=False))


async def _lock_for_create(db: AsyncSession) -> None:
    # Released automatically at commit/rollback. SQLite already serializes writers.
    if db.get_bind().dialect.name == "postgresql":
        await db.execute(select(func.pg_advisory_xact_lock(STOCKTAKING_LOCK_KEY)))


async def _clone_records(db: AsyncSession, source_id: int, target_id: int) -> int:
    columns = [getattr(StockRecord, field) for field in StockRecord.COPIED_FIELDS]
    result = await db.execute(
        select(*columns).where(StockRecord.stocktaking_id == source_id).order_by(StockRecord.id)
    )
    rows = [{**row, "stocktaking_id": target_id} for row in result.mappings().all()]
    if not rows:
        return 0

    # id and created_at come from column defaults, so every clone is fresh
    await db.execute(insert(StockRecord), rows)
    return len(rows)


async def create_stocktaking(
    db: AsyncSession,
    name: str,
    date: datetime.date,
    copy_from_id: Optional[int] = None,
) -> Stocktaking:
    """Open a new active stocktaking, optionally seeded from ``copy_from_id``.

    A ``copy_from_id`` that matches no stocktaking copies nothing and is not an
    error. Storage failures roll back the whole transaction and raise
    StorageError (StorageUnavailable on timeout); nothing is retried.
    """
    name = (name or "").strip()
    if not name or date is None:
        raise ValidationError("Name and date are required")

    try:
        async with storage_deadline():
            await _lock_for_create(db)
            await deactivate_all(db)

            stocktaking = Stocktaking(name=name, date=date, active=True)
            db.add(stocktaking)
            await db.flush()

            copied = 0
            if copy_from_id is not None:
                copied = await _clone_records(db, copy_from_id, stocktaking.id)

            await db.commit()
    except StorageUnavailable:
        await db.rollback()
        logger.error("Creating stocktaking %r timed out; transaction rolled back", name)
        raise
    except sa_exc.TimeoutError as e:
        await db.rollback()
        logger.error("Creating stocktaking %r timed out waiting for a connection", name)
        raise StorageUnavailable() from e
    except sa_exc.SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Creating stocktaking %r failed; transaction rolled back", name)
        raise StorageError(f"Failed to create stocktaking: {e}") from e

    logger.info(
        "Opened stocktaking id=%s name=%r date=%s (copied %d records from %s)",
        stocktaking.id, stocktaking.name, stocktaking.date, copied, copy_from_id,
    )
    return stocktaking
