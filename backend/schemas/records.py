import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class StockRecordUpsert(BaseModel):
    """Create (no id) or update (with id) a stock record."""
    id: Optional[int] = None
    item_id: int = Field(validation_alias=AliasChoices("bichikuhinId", "itemId", "item_id"))
    location_id: int = Field(validation_alias=AliasChoices("locationId", "location_id"))
    unit_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("unitId", "unit_id"))
    quantity: int = Field(default=0, ge=0)
    expiry_date: Optional[datetime.date] = Field(
        default=None, validation_alias=AliasChoices("expiryDate", "expiry_date")
    )
    stocktaking_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("stocktakingId", "stocktaking_id")
    )

    @field_validator("id", "unit_id", "expiry_date", "stocktaking_id", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class StockRecordMove(BaseModel):
    stocktaking_id: int = Field(validation_alias=AliasChoices("stocktakingId", "stocktaking_id"))
