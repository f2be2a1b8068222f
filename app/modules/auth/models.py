from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, String, Boolean, DateTime, Uuid

from app.database.database import Base
from app.common.mixins import TimestampMixin


class UserRole(str, Enum):
    ADMIN = "Admin"
    SUPERVISOR = "Supervisor"
    VENDEDOR = "Vendedor"


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    username = Column(String(50), unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(150), nullable=True)
    role = Column(String(20), nullable=False, default=UserRole.VENDEDOR.value)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
