"""Modela prevzem šoferja in postavka / Driver pickup and pickup item models."""

import enum
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mat_tracker.database import Base, generate_uuid


class PickupStatus(str, enum.Enum):
    """Status prevzema / Pickup batch status."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DriverPickup(Base):
    """Paket ciklov za prevzem / Batch of cycles scheduled for collection."""
    __tablename__ = "driver_pickups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    status: Mapped[PickupStatus] = mapped_column(Enum(PickupStatus), nullable=False, default=PickupStatus.PENDING)
    scheduled_date: Mapped[date | None] = mapped_column(Date)
    assigned_driver: Mapped[str | None] = mapped_column(String(150))
    notes: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_by: Mapped[str | None] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relations
    items: Mapped[list["DriverPickupItem"]] = relationship(
        back_populates="pickup", cascade="all, delete-orphan", lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<DriverPickup {self.id[:8]} {self.status.value}>"


class DriverPickupItem(Base):
    """Posamezen cikel v prevzemu / Single cycle within a pickup batch."""
    __tablename__ = "driver_pickup_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    pickup_id: Mapped[str] = mapped_column(ForeignKey("driver_pickups.id", ondelete="CASCADE"), nullable=False)
    cycle_id: Mapped[str] = mapped_column(ForeignKey("cycles.id"), nullable=False)
    picked_up: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    picked_up_at: Mapped[datetime | None] = mapped_column(DateTime)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relations
    pickup: Mapped["DriverPickup"] = relationship(back_populates="items")
    cycle: Mapped["Cycle"] = relationship()
