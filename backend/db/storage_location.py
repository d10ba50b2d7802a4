from sqlalchemy import Column, Integer, String

from .database import Base


class StorageLocation(Base):
    __tablename__ = "storage_locations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, index=True)

    @property
    def to_schema(self):
        return {"id": self.id, "name": self.name}
