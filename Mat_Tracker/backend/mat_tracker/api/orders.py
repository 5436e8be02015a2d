"""Poti naročil kod / Code order API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.order import OrderStatus
from mat_tracker.models.user import User
from mat_tracker.schemas.order import OrderApproved, OrderCreate, OrderRead, OrderReject
from mat_tracker.schemas.qr_code import QRCodeRead
from mat_tracker.services.orders import OrderService

router = APIRouter()


@router.get("/", response_model=list[OrderRead])
async def list_orders(
    status: OrderStatus | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("orders", "read")),
):
    return await OrderService(db).list_orders(user, status=status)


@router.get("/{order_id}/codes", response_model=list[QRCodeRead])
async def order_codes(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("orders", "read")),
):
    return await OrderService(db).order_codes(order_id, user)


@router.post("/", response_model=OrderRead, status_code=201)
async def create_order(
    data: OrderCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("orders", "create")),
):
    return await OrderService(db).create(user, data.quantity, notes=data.notes)


@router.post("/{order_id}/approve", response_model=OrderApproved)
async def approve_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("orders", "update")),
):
    """Odobri in generiraj kode / Approve and generate the codes."""
    order, codes = await OrderService(db).approve(order_id, user)
    return OrderApproved.model_validate({"order": order, "codes": codes}, from_attributes=True)


@router.post("/{order_id}/reject", response_model=OrderRead)
async def reject_order(
    order_id: str,
    data: OrderReject,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("orders", "update")),
):
    return await OrderService(db).reject(order_id, user, reason=data.reason)


@router.post("/{order_id}/ship", response_model=OrderRead)
async def ship_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("orders", "update")),
):
    return await OrderService(db).ship(order_id, user)


@router.post("/{order_id}/receive", response_model=OrderRead)
async def receive_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("orders", "update")),
):
    return await OrderService(db).receive(order_id, user)
