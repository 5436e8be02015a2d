"""Poti QR kod / QR code API routes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.config import settings
from mat_tracker.database import get_db
from mat_tracker.models.mat_type import MatType
from mat_tracker.models.qr_code import QRStatus
from mat_tracker.models.user import User
from mat_tracker.rate_limit import limiter
from mat_tracker.schemas.qr_code import (
    CodeAssignRequest,
    CodeGenerateRequest,
    MatTypeRead,
    QRCodeRead,
    SellerInventoryRead,
)
from mat_tracker.services.code_registry import CodeRegistryService
from mat_tracker.services.errors import PermissionDeniedError
from mat_tracker.utils.auth import is_scoped_to_self

router = APIRouter()


@router.get("/", response_model=list[QRCodeRead])
async def list_codes(
    owner_id: str | None = None,
    status: QRStatus | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("qr-codes", "read")),
):
    """Seznam kod / List codes. Prodajalec vidi samo svoje."""
    if is_scoped_to_self(user.role):
        owner_id = user.id
    return await CodeRegistryService(db).list_codes(owner_id=owner_id, status=status)


@router.get("/inventory", response_model=list[SellerInventoryRead])
async def seller_inventory(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("analytics", "read")),
):
    """Zaloga po prodajalcih / Per-seller inventory counts."""
    return await CodeRegistryService(db).inventory_by_seller()


@router.get("/mat-types", response_model=list[MatTypeRead])
async def list_mat_types(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("qr-codes", "read")),
):
    result = await db.execute(select(MatType).where(MatType.is_active.is_(True)).order_by(MatType.code))
    return result.scalars().all()


@router.get("/lookup/{code}", response_model=QRCodeRead)
async def lookup_code(
    code: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("qr-codes", "read")),
):
    """Iskanje po skenirani kodi / Lookup by scanned code."""
    qr = await CodeRegistryService(db).get_by_code(code)
    if is_scoped_to_self(user.role) and qr.owner_id != user.id:
        raise PermissionDeniedError("QR code belongs to another salesperson")
    return qr


@router.post("/generate", response_model=list[QRCodeRead], status_code=201)
@limiter.limit(settings.RATE_LIMIT_CODEGEN)
async def generate_codes(
    request: Request,
    data: CodeGenerateRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("qr-codes", "create")),
):
    """Generiraj nove kode / Generate new codes."""
    return await CodeRegistryService(db).create_codes(
        data.count, user, owner_id=data.owner_id, prefix=data.prefix
    )


@router.post("/assign", response_model=list[QRCodeRead])
async def assign_codes(
    data: CodeAssignRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("qr-codes", "update")),
):
    return await CodeRegistryService(db).assign_owner(data.code_ids, data.owner_id, user)


@router.delete("/{code_id}", status_code=204)
async def delete_code(
    code_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("qr-codes", "delete")),
):
    await CodeRegistryService(db).delete_code(code_id, user)
