from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import SessionClaims, current_claims
from db.database import get_async_session
from schemas.masters import ItemCreate, MasterCreate
from services import masters as master_service

router = APIRouter()


@router.get("/masters", response_model=Dict)
async def get_masters(
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """Locations and units for the entry form's select boxes."""
    locations = await master_service.list_locations(db)
    units = await master_service.list_units(db)
    return {
        "locations": [loc.to_schema for loc in locations],
        "units": [u.to_schema for u in units],
    }


@router.post("/locations", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: MasterCreate,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    location = await master_service.create_location(db, payload.name)
    return location.to_schema


@router.post("/units", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_unit(
    payload: MasterCreate,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    unit = await master_service.create_unit(db, payload.name)
    return unit.to_schema


@router.get("/bichikuhin", response_model=List[Dict])
async def search_items(
    name: Optional[str] = None,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    """Catalog items whose name contains ``name``; no query returns []."""
    items = await master_service.search_items(db, name)
    return [item.to_schema for item in items]


@router.post("/bichikuhin", response_model=Dict, status_code=status.HTTP_201_CREATED)
async def create_item(
    payload: ItemCreate,
    claims: SessionClaims = Depends(current_claims),
    db: AsyncSession = Depends(get_async_session),
):
    item = await master_service.create_item(db, payload.name, payload.unit_id)
    return item.to_schema
