from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Date, DateTime, Index, Integer, String, text
from sqlalchemy.orm import relationship

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Stocktaking(Base):
    __tablename__ = "stocktakings"
    __table_args__ = (
        # At most one active stocktaking per committed state
        Index(
            "ux_stocktakings_single_active",
            "active",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    date = Column(Date, nullable=False, index=True)
    active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    records = relationship("StockRecord", back_populates="stocktaking")

    @property
    def to_schema(self):
        return {
            "id": self.id,
            "name": self.name,
            "date": self.date,
            "active": bool(self.active),
            "created_at": self.created_at,
        }
