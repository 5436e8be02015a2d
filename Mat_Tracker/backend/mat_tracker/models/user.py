"""
Model uporabnika / User (profile) model.
Identiteto izda zunanji ponudnik; tukaj je le profil z vlogo.
Identity is issued externally; this is the profile with its role.
"""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from mat_tracker.database import Base, generate_uuid


class UserRole(str, enum.Enum):
    """Vloga uporabnika / User role."""
    PRODAJALEC = "prodajalec"  # prodajalec / salesperson
    INVENTAR = "inventar"      # inventura, logistika / inventory & ops
    ADMIN = "admin"


class User(Base):
    """Uporabnik aplikacije / Application user."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    email: Mapped[str] = mapped_column(String(150), unique=True, nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False, default=UserRole.PRODAJALEC)
    code_prefix: Mapped[str | None] = mapped_column(String(10), unique=True)  # npr. GEO, STAN
    phone: Mapped[str | None] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
