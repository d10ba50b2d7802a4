from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockRecord(Base):
    __tablename__ = "stock_records"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_records_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    quantity = Column(Integer, nullable=False, default=0)
    expiry_date = Column(Date, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)

    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)
    storage_location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, index=True)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False, index=True)
    stocktaking_id = Column(Integer, ForeignKey("stocktakings.id"), nullable=False, index=True)

    item = relationship("Item", back_populates="records")
    storage_location = relationship("StorageLocation")
    unit = relationship("Unit")
    stocktaking = relationship("Stocktaking", back_populates="records")

    # Value fields carried over when a stocktaking is seeded from another one
    COPIED_FIELDS = ("item_id", "storage_location_id", "unit_id", "quantity", "expiry_date")

    @property
    def to_schema(self):
        """Record with its item, unit and location joined (relationships must be loaded)."""
        return {
            "id": self.id,
            "quantity": self.quantity,
            "expiry_date": self.expiry_date,
            "created_at": self.created_at,
            "stocktaking_id": self.stocktaking_id,
            "item_id": self.item_id,
            "storage_location_id": self.storage_location_id,
            "unit_id": self.unit_id,
            "item": self.item.to_schema if self.item else None,
            "unit": self.unit.to_schema if self.unit else None,
            "storage_location": self.storage_location.to_schema if self.storage_location else None,
        }
