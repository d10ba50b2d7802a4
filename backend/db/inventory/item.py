from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ..database import Base


class Item(Base):
    """Catalog entry for a stockpiled good (bichikuhin)."""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)

    # Default unit used when a record is entered without one
    unit_id = Column(Integer, ForeignKey("units.id", ondelete="SET NULL"), nullable=True, index=True)

    unit = relationship("Unit", back_populates="items")
    records = relationship("StockRecord", back_populates="item")

    @property
    def to_schema(self):
        # unit must be eagerly loaded by the caller
        return {
            "id": self.id,
            "name": self.name,
            "unit_id": self.unit_id,
            "unit": self.unit.to_schema if self.unit else None,
        }
