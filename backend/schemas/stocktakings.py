import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class StocktakingCreate(BaseModel):
    name: str
    date: datetime.date
    copy_from_id: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("copyFromId", "copy_from_id")
    )

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("copy_from_id", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Any:
        # Forms send "" (or 0) when no source stocktaking is picked
        if v in ("", 0, "0"):
            return None
        return v
