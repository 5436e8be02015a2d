"""Sheme podjetje in kontakt / Company and contact schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from mat_tracker.models.company import PipelineStatus
from mat_tracker.schemas.reminder import ReminderRead


# --- Contact ---
class ContactCreate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    role: str | None = None
    is_primary: bool = False


class ContactUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    role: str | None = None
    is_primary: bool | None = None


class ContactRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    company_id: str
    first_name: str | None
    last_name: str | None
    email: str | None
    phone: str | None
    role: str | None
    is_primary: bool


# --- Company ---
class CompanyBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    display_name: str | None = None
    tax_number: str | None = None
    address_street: str | None = None
    address_postal: str | None = None
    address_city: str | None = None
    delivery_address: str | None = None
    billing_address: str | None = None
    parent_company_id: str | None = None
    notes: str | None = None


class CompanyCreate(CompanyBase):
    contacts: list[ContactCreate] = []


class CompanyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    display_name: str | None = None
    tax_number: str | None = None
    address_street: str | None = None
    address_postal: str | None = None
    address_city: str | None = None
    delivery_address: str | None = None
    billing_address: str | None = None
    parent_company_id: str | None = None
    notes: str | None = None


class CompanyRead(CompanyBase):
    model_config = ConfigDict(from_attributes=True)
    id: str
    pipeline_status: PipelineStatus
    offer_sent_at: datetime | None
    contract_sent_at: datetime | None
    contract_called_at: datetime | None
    created_by: str | None
    created_at: datetime | None = None


class CompanyDetail(CompanyRead):
    contacts: list[ContactRead] = []


class PipelineUpdate(BaseModel):
    pipeline_status: PipelineStatus


class FollowupResult(BaseModel):
    """Podjetje in ustvarjen opomnik / Company plus the reminder that was scheduled."""
    company: CompanyRead
    reminder: ReminderRead
