"""Modela cikel in zgodovina cikla / Cycle and cycle history models."""

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, Enum, Float, ForeignKey, Index, Integer, String, Text, func, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mat_tracker.database import Base, generate_uuid


class CycleStatus(str, enum.Enum):
    """Status cikla / Cycle status."""
    CLEAN = "clean"                    # čist, prost / clean, not placed
    ON_TEST = "on_test"                # na testu pri stranki / on trial at a customer
    DIRTY = "dirty"                    # umazan / soiled
    WAITING_DRIVER = "waiting_driver"  # čaka šoferja / waiting for pickup
    COMPLETED = "completed"            # zaključen / terminal


class ContractFrequency(str, enum.Enum):
    """Frekvenca menjave po pogodbi / Contract exchange frequency."""
    ONE_WEEK = "1_week"
    TWO_WEEKS = "2_weeks"
    THREE_WEEKS = "3_weeks"
    FOUR_WEEKS = "4_weeks"


class Cycle(Base):
    """En cikel fizičnega predpražnika / One rental/trial iteration of a physical mat."""
    __tablename__ = "cycles"
    __table_args__ = (
        # Največ en odprt cikel na QR kodo / At most one open cycle per QR code
        Index(
            "uq_cycles_open_qr_code",
            "qr_code_id",
            unique=True,
            sqlite_where=text("status != 'COMPLETED'"),
            postgresql_where=text("status != 'COMPLETED'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    qr_code_id: Mapped[str] = mapped_column(ForeignKey("qr_codes.id"), nullable=False)
    salesperson_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    mat_type_id: Mapped[str] = mapped_column(ForeignKey("mat_types.id"), nullable=False)
    status: Mapped[CycleStatus] = mapped_column(Enum(CycleStatus), nullable=False, default=CycleStatus.CLEAN)

    company_id: Mapped[str | None] = mapped_column(ForeignKey("companies.id"))
    contact_id: Mapped[str | None] = mapped_column(ForeignKey("contacts.id"))

    test_start_date: Mapped[datetime | None] = mapped_column(DateTime)
    test_end_date: Mapped[datetime | None] = mapped_column(DateTime)
    extended_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    contract_signed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    contract_signed_at: Mapped[datetime | None] = mapped_column(DateTime)
    contract_frequency: Mapped[ContractFrequency | None] = mapped_column(Enum(ContractFrequency))

    location_lat: Mapped[float | None] = mapped_column(Float)
    location_lng: Mapped[float | None] = mapped_column(Float)
    notes: Mapped[str | None] = mapped_column(Text)

    pickup_requested_at: Mapped[datetime | None] = mapped_column(DateTime)
    driver_pickup_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Optimistično zaklepanje / Optimistic locking
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    # Relations
    qr_code: Mapped["QRCode"] = relationship()
    salesperson: Mapped["User"] = relationship()
    mat_type: Mapped["MatType"] = relationship()
    company: Mapped["Company | None"] = relationship()
    contact: Mapped["Contact | None"] = relationship()

    @property
    def is_open(self) -> bool:
        return self.status != CycleStatus.COMPLETED

    def __repr__(self) -> str:
        return f"<Cycle {self.id[:8]} {self.status.value}>"


class CycleHistory(Base):
    """Zgodovina sprememb cikla / Cycle change history."""
    __tablename__ = "cycle_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    cycle_id: Mapped[str] = mapped_column(ForeignKey("cycles.id", ondelete="CASCADE"), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)  # created, put_on_test, test_extended, ...
    old_status: Mapped[CycleStatus | None] = mapped_column(Enum(CycleStatus))
    new_status: Mapped[CycleStatus | None] = mapped_column(Enum(CycleStatus))
    metadata_json: Mapped[str | None] = mapped_column(Text)
    performed_by: Mapped[str | None] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relations
    cycle: Mapped["Cycle"] = relationship()

    def __repr__(self) -> str:
        return f"<CycleHistory {self.action}>"
