"""Model tipa predpražnika / Mat type model."""

import enum

from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from mat_tracker.database import Base, generate_uuid


class MatCategory(str, enum.Enum):
    """Kategorija predpražnika / Mat category."""
    STANDARD = "standard"
    ERGO = "ergo"
    DESIGN = "design"


class MatType(Base):
    """Tip predpražnika (dimenzije) / Mat type (dimensions)."""
    __tablename__ = "mat_types"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)  # npr. MBW1
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[MatCategory] = mapped_column(Enum(MatCategory), nullable=False, default=MatCategory.STANDARD)
    width_cm: Mapped[int | None] = mapped_column(Integer)
    height_cm: Mapped[int | None] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    def __repr__(self) -> str:
        return f"<MatType {self.code}>"
