"""Sheme ciklov / Cycle schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from mat_tracker.models.cycle import ContractFrequency, CycleStatus
from mat_tracker.schemas.company import CompanyCreate, ContactCreate
from mat_tracker.utils.timeutils import UtcDatetime


class CycleCreate(BaseModel):
    qr_code_id: str
    mat_type_id: str
    notes: str | None = None


class LocationFix(BaseModel):
    """Koordinate z naprave / Coordinates reported by the device."""
    lat: float
    lng: float
    accuracy_m: float | None = None
    captured_at: UtcDatetime | None = None


class PutOnTestRequest(BaseModel):
    company_id: str | None = None
    new_company: CompanyCreate | None = None
    contact_id: str | None = None
    new_contact: ContactCreate | None = None
    location: LocationFix | None = None
    test_start_date: UtcDatetime | None = None


class ContractSignRequest(BaseModel):
    frequency: ContractFrequency
    request_pickup: bool = False


class LocationUpdate(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class StartDateUpdate(BaseModel):
    test_start_date: UtcDatetime


class CycleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    qr_code_id: str
    salesperson_id: str
    mat_type_id: str
    status: CycleStatus
    company_id: str | None
    contact_id: str | None
    test_start_date: datetime | None
    test_end_date: datetime | None
    extended_count: int
    contract_signed: bool
    contract_signed_at: datetime | None
    contract_frequency: ContractFrequency | None
    location_lat: float | None
    location_lng: float | None
    notes: str | None
    pickup_requested_at: datetime | None
    driver_pickup_at: datetime | None
    completed_at: datetime | None
    version: int
    # Izpeljano ob branju / Derived at read time
    is_expiring: bool = False
    days_on_test: int = 0
    days_remaining: int | None = None
    neglect_level: str | None = None


class CycleHistoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    cycle_id: str
    action: str
    old_status: CycleStatus | None
    new_status: CycleStatus | None
    metadata_json: str | None
    performed_by: str | None
    created_at: datetime
