"""Sheme prevzemov / Driver pickup schemas."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from mat_tracker.models.driver_pickup import PickupStatus


class PickupCreate(BaseModel):
    cycle_ids: list[str] = Field(min_length=1)
    scheduled_date: date | None = None
    assigned_driver: str | None = None
    notes: str | None = None


class PickupUpdate(BaseModel):
    scheduled_date: date | None = None
    assigned_driver: str | None = None
    notes: str | None = None


class ItemNotesUpdate(BaseModel):
    notes: str | None = None


class PickupItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    pickup_id: str
    cycle_id: str
    picked_up: bool
    picked_up_at: datetime | None
    notes: str | None


class PickupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    status: PickupStatus
    scheduled_date: date | None
    assigned_driver: str | None
    notes: str | None
    started_at: datetime | None
    completed_at: datetime | None
    created_by: str | None
    created_at: datetime
    items: list[PickupItemRead] = []
