from typing import Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import SessionClaims, current_admin, current_claims, require_poller_key
from db.database import get_async_session
from schemas.records import StockRecordMove, StockRecordUpsert
from services import records as record_service

router = APIRouter()


@router.get("/expired", response_model=List[Dict], dependencies=[Depends(require_poller_key)])
async def list_expired_records(db: AsyncSession = Depends(get_async_session)):
    """
    Expired records of the active stocktaking, soonest expiry first.

    Gated by the x-api-key header for the external poller, not by session cookies.
    """
    records = await record_service.list_expired_in_active(db)
    return [r.to_schema for r in records]


@router.get("/{stocktaking_id}", response_model=List[Dict])
async def list_records(
    stocktaking_id: int,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """Records of one stocktaking with item, unit and location, newest first."""
    records = await record_service.list_by_snapshot(db, stocktaking_id)
    return [r.to_schema for r in records]


@router.post("", response_model=Dict)
@router.put("", response_model=Dict)
async def upsert_record(
    payload: StockRecordUpsert,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """Update the record when an id is given, otherwise create it."""
    record = await record_service.upsert_record(db, payload)
    return {"success": True, "id": record.id}


@router.post("/{record_id}/move", response_model=Dict)
async def move_record(
    record_id: int,
    payload: StockRecordMove,
    admin: SessionClaims = Depends(current_admin),
    db: AsyncSession = Depends(get_async_session),
):
    """Move a record to another stocktaking (admin only)."""
    record = await record_service.move_record(db, record_id, payload.stocktaking_id)
    return record.to_schema
