"""Sheme opomnikov / Reminder schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from mat_tracker.models.reminder import ReminderType
from mat_tracker.utils.timeutils import UtcDatetime


class CompanyBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    name: str
    display_name: str | None = None


class ReminderCreate(BaseModel):
    reminder_at: UtcDatetime
    note: str | None = None
    company_id: str | None = None
    reminder_type: ReminderType = ReminderType.GENERAL


class ReminderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    user_id: str
    company_id: str | None
    reminder_at: datetime
    note: str | None
    reminder_type: ReminderType
    is_completed: bool
    company: CompanyBrief | None = None


class PostponeRequest(BaseModel):
    """Brez `until` se opomnik prestavi na jutri ob 09:00 / Without `until`, moves to tomorrow 09:00."""
    until: UtcDatetime | None = None


class ContractReceivedRequest(BaseModel):
    reminder_id: str | None = None
