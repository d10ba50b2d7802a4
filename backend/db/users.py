from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, Integer, String

from core.security import Role
from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(150), nullable=False, unique=True, index=True)
    display_name = Column(String(150), nullable=True)
    role = Column(
        Enum(Role, name="user_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER,
    )
    hashed_password = Column(String(1024), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def to_schema(self):
        """Public view of the user; never includes the password digest."""
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "role": self.role.value if self.role else None,
        }
