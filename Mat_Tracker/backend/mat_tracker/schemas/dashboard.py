"""Sheme nadzorne plošče, analitike in zemljevida / Dashboard, analytics and map schemas."""

from pydantic import BaseModel, ConfigDict


# --- Dashboard ---
class ActionItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    type: str
    title: str
    description: str
    priority: str
    link: str
    count: int | None = None
    days: int | None = None
    meta: dict = {}


class DashboardActionsRead(BaseModel):
    urgent: list[ActionItemRead]
    today: list[ActionItemRead]
    total_urgent: int
    total_today: int


# --- Analytics ---
class KpiRead(BaseModel):
    active_cycles: int
    on_test: int
    conversion_rate: int
    total_contracts: int


class MonthlyPoint(BaseModel):
    month: str  # YYYY-MM
    new_tests: int
    contracts: int
    completed: int


class StatusSlice(BaseModel):
    status: str
    label: str
    value: int


class TopSellerRead(BaseModel):
    id: str
    name: str
    code_prefix: str | None
    total_cycles: int
    contracts: int
    on_test: int


class ExpiringTestRead(BaseModel):
    cycle_id: str
    qr_code: str
    company_name: str | None
    days_remaining: int
    salesperson_name: str


# --- Map ---
class MapLocationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    cycle_id: str
    lat: float
    lng: float
    marker_status: str
    qr_code: str | None
    company_id: str | None
    company_name: str | None
    salesperson_id: str
    salesperson_name: str
    days_on_test: int
    contract_signed: bool


class LocationGroupRead(BaseModel):
    lat: float
    lng: float
    count: int
    locations: list[MapLocationRead]


class NearestRead(BaseModel):
    location: MapLocationRead | None
    distance_km: float | None
    is_within_range: bool
