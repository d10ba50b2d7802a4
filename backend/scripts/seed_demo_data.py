import asyncio
import sys
from datetime import date, timedelta
from pathlib import Path

"""
Seed demo master data (units, storage locations, catalog items) and a few
stock records in the active stocktaking.

This script can be run from either:
- backend/: `python scripts/seed_demo_data.py`
- repo root: `python backend/scripts/seed_demo_data.py`
"""

# Allow running from repo root by ensuring `backend/` is on sys.path
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from db.database import (
    async_session_maker,
    create_db_and_tables,
    Item,
    StockRecord,
    StorageLocation,
    Unit,
)
from services.bootstrap import seed_defaults
from services.stocktakings import active_stocktaking


async def get_or_create_named(session, model, name: str):
    result = await session.execute(
        select(model).where(func.lower(model.name) == name.strip().lower())
    )
    row = result.scalars().first()
    if row:
        return row

    row = model(name=name.strip())
    session.add(row)
    await session.flush()
    return row


async def get_or_create_item(session, name: str, unit: Unit) -> Item:
    result = await session.execute(
        select(Item).where(func.lower(Item.name) == name.strip().lower())
    )
    item = result.scalars().first()
    if item:
        return item

    item = Item(name=name.strip(), unit_id=unit.id)
    session.add(item)
    await session.flush()
    return item


async def seed():
    await create_db_and_tables()

    async with async_session_maker() as session:
        await seed_defaults(session)

        stocktaking = await active_stocktaking(session)
        if stocktaking is None:
            print("No active stocktaking; open one before seeding demo records")
            return 1

        pieces = await get_or_create_named(session, Unit, "pcs")
        bottles = await get_or_create_named(session, Unit, "bottles")
        boxes = await get_or_create_named(session, Unit, "boxes")

        warehouse = await get_or_create_named(session, StorageLocation, "Warehouse A")
        office = await get_or_create_named(session, StorageLocation, "Office 2F")

        water = await get_or_create_item(session, "Drinking water 2L", bottles)
        biscuits = await get_or_create_item(session, "Emergency biscuits", boxes)
        blankets = await get_or_create_item(session, "Thermal blanket", pieces)
        flashlight = await get_or_create_item(session, "Flashlight", pieces)

        existing = await session.execute(
            select(func.count()).select_from(StockRecord).where(StockRecord.stocktaking_id == stocktaking.id)
        )
        if int(existing.scalar_one()) == 0:
            today = date.today()
            # (item, location, quantity, expiry)
            rows = [
                (water, warehouse, 120, today + timedelta(days=400)),
                (water, office, 24, today - timedelta(days=10)),
                (biscuits, warehouse, 40, today + timedelta(days=30)),
                (blankets, warehouse, 60, None),
                (flashlight, office, 8, None),
            ]
            for item, location, quantity, expiry in rows:
                session.add(
                    StockRecord(
                        item_id=item.id,
                        storage_location_id=location.id,
                        unit_id=item.unit_id,
                        quantity=quantity,
                        expiry_date=expiry,
                        stocktaking_id=stocktaking.id,
                    )
                )

        await session.commit()
        print(f"Seeded demo data into stocktaking {stocktaking.id} ({stocktaking.name})")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(seed()))
