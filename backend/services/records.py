"""
Stock record ledger.

Every record belongs to one stocktaking. Upserts edit a record's values in
place but never its stocktaking; moving a record is a separate, explicit
operation.
"""
import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import NotFound, StorageError, ValidationError
from core.logger import get_logger
from db.database import Item, StockRecord, StorageLocation, Unit, with_storage_deadline
from schemas.records import StockRecordUpsert
from services.stocktakings import active_stocktaking, get_stocktaking

logger = get_logger("records")


def _with_joins(stmt):
    return stmt.options(
        selectinload(StockRecord.item).selectinload(Item.unit),
        selectinload(StockRecord.unit),
        selectinload(StockRecord.storage_location),
    )


async def _require(db: AsyncSession, model, row_id: int, label: str):
    row = await db.get(model, row_id)
    if row is None:
        raise NotFound(f"{label} with id {row_id} not found")
    return row


async def _commit(db: AsyncSession, action: str) -> None:
    try:
        await db.commit()
    except sa_exc.SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to %s; transaction rolled back", action)
        raise StorageError(f"Failed to {action}: {e}") from e


@with_storage_deadline
async def get_record(db: AsyncSession, record_id: int) -> StockRecord:
    result = await db.execute(
        _with_joins(select(StockRecord))
        .where(StockRecord.id == record_id)
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFound(f"Stock record with id {record_id} not found")
    return record


@with_storage_deadline
async def upsert_record(db: AsyncSession, payload: StockRecordUpsert) -> StockRecord:
    """Update the record named by ``payload.id`` or insert a new one.

    All foreign references are resolved before writing. The unit falls back
    to the item's default unit, then to the record's current unit.
    """
    item = await _require(db, Item, payload.item_id, "Item")
    await _require(db, StorageLocation, payload.location_id, "Storage location")

    record: Optional[StockRecord] = None
    if payload.id is not None:
        record = await _require(db, StockRecord, payload.id, "Stock record")
        if payload.stocktaking_id is not None and payload.stocktaking_id != record.stocktaking_id:
            raise ValidationError("A record cannot change stocktaking here; move it explicitly")

    unit_id = payload.unit_id or item.unit_id or (record.unit_id if record else None)
    if unit_id is None:
        raise ValidationError("unitId is required for items without a default unit")
    await _require(db, Unit, unit_id, "Unit")

    if record is not None:
        record.item_id = payload.item_id
        record.storage_location_id = payload.location_id
        record.unit_id = unit_id
        record.quantity = payload.quantity
        record.expiry_date = payload.expiry_date
        await _commit(db, f"update stock record {record.id}")
        return record

    if payload.stocktaking_id is None:
        raise ValidationError("stocktakingId is required")
    await get_stocktaking(db, payload.stocktaking_id)

    record = StockRecord(
        item_id=payload.item_id,
        storage_location_id=payload.location_id,
        unit_id=unit_id,
        quantity=payload.quantity,
        expiry_date=payload.expiry_date,
        stocktaking_id=payload.stocktaking_id,
    )
    db.add(record)
    await _commit(db, "create stock record")
    return record


@with_storage_deadline
async def move_record(db: AsyncSession, record_id: int, stocktaking_id: int) -> StockRecord:
    """Reassign a record to another stocktaking (correcting a mis-filed entry)."""
    record = await _require(db, StockRecord, record_id, "Stock record")
    await get_stocktaking(db, stocktaking_id)

    previous = record.stocktaking_id
    record.stocktaking_id = stocktaking_id
    await _commit(db, f"move stock record {record_id}")
    logger.info("Moved stock record id=%s from stocktaking %s to %s", record_id, previous, stocktaking_id)
    return await get_record(db, record_id)


@with_storage_deadline
async def list_by_snapshot(db: AsyncSession, stocktaking_id: int) -> List[StockRecord]:
    stmt = (
        _with_joins(select(StockRecord))
        .where(StockRecord.stocktaking_id == stocktaking_id)
        .order_by(StockRecord.created_at.desc(), StockRecord.id.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


@with_storage_deadline
async def list_expired(
    db: AsyncSession,
    stocktaking_id: int,
    today: Optional[datetime.date] = None,
) -> List[StockRecord]:
    """Records whose expiry date is set and has been reached.

    An expiry date is read as midnight at the start of that day, so a record
    expiring today is already expired.
    """
    today = today or datetime.date.today()
    stmt = (
        _with_joins(select(StockRecord))
        .where(
            StockRecord.stocktaking_id == stocktaking_id,
            StockRecord.expiry_date.is_not(None),
            StockRecord.expiry_date <= today,
        )
        .order_by(StockRecord.expiry_date.asc(), StockRecord.id.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


@with_storage_deadline
async def list_expired_in_active(db: AsyncSession, today: Optional[datetime.date] = None) -> List[StockRecord]:
    active = await active_stocktaking(db)
    if active is None:
        return []
    return await list_expired(db, active.id, today=today)
