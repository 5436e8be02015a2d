"""Sheme QR kod in tipov predpražnikov / QR code and mat type schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from mat_tracker.models.mat_type import MatCategory
from mat_tracker.models.qr_code import QRStatus


class QRCodeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    code: str
    owner_id: str | None
    status: QRStatus
    order_id: str | None
    last_reset_at: datetime | None
    created_at: datetime | None = None


class CodeGenerateRequest(BaseModel):
    """Z lastnikom se uporabi njegova predpona / With an owner, the owner's prefix is used."""
    count: int = Field(ge=1, le=500)
    owner_id: str | None = None
    prefix: str | None = Field(default=None, pattern=r"^[A-Z0-9]+$")


class CodeAssignRequest(BaseModel):
    code_ids: list[str] = Field(min_length=1)
    owner_id: str


class SellerInventoryRead(BaseModel):
    seller_id: str
    seller_name: str
    code_prefix: str | None
    free_codes: int
    clean: int
    on_test: int
    dirty: int
    waiting_driver: int
    total: int


class MatTypeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    code: str
    name: str
    category: MatCategory
    width_cm: int | None
    height_cm: int | None
    is_active: bool
