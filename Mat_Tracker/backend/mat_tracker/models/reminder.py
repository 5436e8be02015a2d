"""Model opomnika / Reminder model."""

import enum
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mat_tracker.database import Base, generate_uuid


class ReminderType(str, enum.Enum):
    """Vrsta opomnika / Reminder type."""
    GENERAL = "general"
    CONTRACT_FOLLOWUP = "contract_followup"
    OFFER_FOLLOWUP_1 = "offer_followup_1"
    OFFER_FOLLOWUP_2 = "offer_followup_2"
    OFFER_CALL = "offer_call"


class Reminder(Base):
    """Načrtovan opomnik uporabnika / Scheduled follow-up for a user."""
    __tablename__ = "reminders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), nullable=False)
    company_id: Mapped[str | None] = mapped_column(ForeignKey("companies.id"))
    reminder_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    note: Mapped[str | None] = mapped_column(Text)
    reminder_type: Mapped[ReminderType] = mapped_column(
        Enum(ReminderType), nullable=False, default=ReminderType.GENERAL
    )
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relations
    company: Mapped["Company | None"] = relationship(lazy="selectin")

    def __repr__(self) -> str:
        return f"<Reminder {self.reminder_type.value} @ {self.reminder_at}>"
