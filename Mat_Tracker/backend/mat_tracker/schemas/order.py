"""Sheme naročil kod / Code order schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from mat_tracker.models.order import OrderStatus
from mat_tracker.schemas.qr_code import QRCodeRead


class OrderCreate(BaseModel):
    quantity: int = Field(ge=1, le=500)
    notes: str | None = None


class OrderReject(BaseModel):
    reason: str | None = None


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    salesperson_id: str
    quantity: int
    status: OrderStatus
    notes: str | None
    rejection_reason: str | None
    approved_by: str | None
    approved_at: datetime | None
    shipped_at: datetime | None
    received_at: datetime | None
    created_at: datetime | None = None


class OrderApproved(BaseModel):
    order: OrderRead
    codes: list[QRCodeRead]
