from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from .database import Base


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)

    items = relationship("Item", back_populates="unit")

    @property
    def to_schema(self):
        return {"id": self.id, "name": self.name}
