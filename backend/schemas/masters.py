from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class MasterCreate(BaseModel):
    """Storage location or unit."""
    name: str

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v


class ItemCreate(MasterCreate):
    unit_id: Optional[int] = Field(default=None, validation_alias=AliasChoices("unitId", "unit_id"))

    @field_validator("unit_id", mode="before")
    @classmethod
    def _blank_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v
