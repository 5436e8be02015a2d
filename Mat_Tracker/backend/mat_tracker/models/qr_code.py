"""Model QR kode / QR code model."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mat_tracker.database import Base, generate_uuid


class QRStatus(str, enum.Enum):
    """Status QR kode / QR code status."""
    PENDING = "pending"      # ustvarjena, brez lastnika / generated, no owner yet
    AVAILABLE = "available"  # prosta pri prodajalcu / free, held by a salesperson
    ACTIVE = "active"        # vezana na odprt cikel / bound to an open cycle


class QRCode(Base):
    """Unikatna oznaka na predpražniku / Unique tag on a physical mat."""
    __tablename__ = "qr_codes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)  # PREFIX-XXXX
    owner_id: Mapped[str | None] = mapped_column(ForeignKey("users.id"))
    status: Mapped[QRStatus] = mapped_column(Enum(QRStatus), nullable=False, default=QRStatus.AVAILABLE)
    order_id: Mapped[str | None] = mapped_column(ForeignKey("code_orders.id"))
    last_reset_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relations
    owner: Mapped["User | None"] = relationship()

    def __repr__(self) -> str:
        return f"<QRCode {self.code} {self.status.value}>"
