from typing import Dict, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import SessionClaims, current_claims
from core.errors import NotFound
from db.database import get_async_session
from schemas.stocktakings import StocktakingCreate
from services import stocktakings as stocktaking_service

router = APIRouter()


@router.get("", response_model=List[Dict])
async def list_stocktakings(
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """All stocktakings, newest date first."""
    stocktakings = await stocktaking_service.list_stocktakings(db)
    return [s.to_schema for s in stocktakings]


@router.get("/active", response_model=Dict)
async def get_active_stocktaking(
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    stocktaking = await stocktaking_service.active_stocktaking(db)
    if stocktaking is None:
        raise NotFound("No active stocktaking")
    return stocktaking.to_schema


@router.post("", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_stocktaking(
    payload: StocktakingCreate,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """
    Open a new stocktaking and make it the only active one.

    - copyFromId seeds it with copies of that stocktaking's records.
    - An unknown copyFromId creates an empty stocktaking.
    """
    stocktaking = await stocktaking_service.create_stocktaking(
        db, payload.name, payload.date, copy_from_id=payload.copy_from_id
    )
    return stocktaking.to_schema
