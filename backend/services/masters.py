"""Master data: storage locations, units and the item catalog. Create/read only."""
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import NotFound, ValidationError
from db.database import Item, StorageLocation, Unit, with_storage_deadline


def _required_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    return name


@with_storage_deadline
async def list_locations(db: AsyncSession) -> List[StorageLocation]:
    result = await db.execute(select(StorageLocation).order_by(StorageLocation.id))
    return list(result.scalars().all())


@with_storage_deadline
async def list_units(db: AsyncSession) -> List[Unit]:
    result = await db.execute(select(Unit).order_by(Unit.id))
    return list(result.scalars().all())


async def _get_or_create(db: AsyncSession, model, name: str):
    # Case-insensitive match returns the existing row
    result = await db.execute(select(model).where(func.lower(model.name) == name.lower()))
    existing = result.scalars().first()
    if existing:
        return existing

    row = model(name=name)
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row


@with_storage_deadline
async def create_location(db: AsyncSession, name: str) -> StorageLocation:
    return await _get_or_create(db, StorageLocation, _required_name(name))


@with_storage_deadline
async def create_unit(db: AsyncSession, name: str) -> Unit:
    return await _get_or_create(db, Unit, _required_name(name))


@with_storage_deadline
async def get_item(db: AsyncSession, item_id: int) -> Item:
    result = await db.execute(
        select(Item)
        .options(selectinload(Item.unit))
        .where(Item.id == item_id)
        .execution_options(populate_existing=True)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFound(f"Item with id {item_id} not found")
    return item


@with_storage_deadline
async def search_items(db: AsyncSession, name: Optional[str]) -> List[Item]:
    """Substring search on item names; an empty query matches nothing."""
    q = (name or "").strip()
    if not q:
        return []
    stmt = (
        select(Item)
        .options(selectinload(Item.unit))
        .where(func.lower(Item.name).like(f"%{q.lower()}%"))
        .order_by(Item.name, Item.id)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


@with_storage_deadline
async def create_item(db: AsyncSession, name: str, unit_id: Optional[int] = None) -> Item:
    name = _required_name(name)
    if unit_id is not None and await db.get(Unit, unit_id) is None:
        raise NotFound(f"Unit with id {unit_id} not found")

    item = Item(name=name, unit_id=unit_id)
    db.add(item)
    await db.commit()
    return await get_item(db, item.id)
