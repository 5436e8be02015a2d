"""Modela podjetje in kontakt / Company and contact models."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mat_tracker.database import Base, generate_uuid


class PipelineStatus(str, enum.Enum):
    """Faza prodajnega lijaka / Sales funnel stage."""
    NEW = "new"
    CONTACTED = "contacted"
    OFFER_SENT = "offer_sent"
    CONTRACT_SENT = "contract_sent"
    CONTRACT_SIGNED = "contract_signed"
    ACTIVE = "active"


class Company(Base):
    """Stranka / Customer account."""
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(200))
    tax_number: Mapped[str | None] = mapped_column(String(20), unique=True)  # davčna številka

    # Naslovi / Addresses
    address_street: Mapped[str | None] = mapped_column(String(200))
    address_postal: Mapped[str | None] = mapped_column(String(10))
    address_city: Mapped[str | None] = mapped_column(String(100))
    delivery_address: Mapped[str | None] = mapped_column(String(300))
    billing_address: Mapped[str | None] = mapped_column(String(300))

    # Lijak / Pipeline
    pipeline_status: Mapped[PipelineStatus] = mapped_column(
        Enum(PipelineStatus), nullable=False, default=PipelineStatus.NEW
    )
    offer_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    contract_sent_at: Mapped[datetime | None] = mapped_column(DateTime)
    contract_called_at: Mapped[datetime | None] = mapped_column(DateTime)

    parent_company_id: Mapped[str | None] = mapped_column(ForeignKey("companies.id"))
    notes: Mapped[str | None] = mapped_column(Text)
    created_by: Mapped[str | None] = mapped_column(ForeignKey("users.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relations
    contacts: Mapped[list["Contact"]] = relationship(back_populates="company", cascade="all, delete-orphan")
    parent: Mapped["Company | None"] = relationship(remote_side="Company.id", back_populates="children")
    children: Mapped[list["Company"]] = relationship(back_populates="parent")

    @property
    def label(self) -> str:
        return self.display_name or self.name

    def __repr__(self) -> str:
        return f"<Company {self.name}>"


class Contact(Base):
    """Kontaktna oseba pri stranki / Contact person at a customer."""
    __tablename__ = "contacts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    email: Mapped[str | None] = mapped_column(String(150))
    phone: Mapped[str | None] = mapped_column(String(50))
    role: Mapped[str | None] = mapped_column(String(100))
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    # Relations
    company: Mapped["Company"] = relationship(back_populates="contacts")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def __repr__(self) -> str:
        return f"<Contact {self.full_name}>"
