"""
Naročila QR kod / QR code orders.
pending -> approved | rejected, approved -> shipped -> received.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.models.order import CodeOrder, OrderStatus
from mat_tracker.models.qr_code import QRCode
from mat_tracker.models.user import User, UserRole
from mat_tracker.services.code_registry import CodeRegistryService
from mat_tracker.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    flush_changes,
)
from mat_tracker.utils.timeutils import utcnow

log = logging.getLogger(__name__)

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.APPROVED, OrderStatus.REJECTED}),
    OrderStatus.APPROVED: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.RECEIVED}),
    OrderStatus.REJECTED: frozenset(),
    OrderStatus.RECEIVED: frozenset(),
}


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, order_id: str, actor: User) -> CodeOrder:
        order = await self.db.get(CodeOrder, order_id)
        if not order:
            raise NotFoundError("Order not found")
        if actor.role == UserRole.PRODAJALEC and order.salesperson_id != actor.id:
            raise PermissionDeniedError("Order belongs to another salesperson")
        return order

    async def list_orders(self, actor: User, status: OrderStatus | None = None) -> list[CodeOrder]:
        query = select(CodeOrder).order_by(CodeOrder.created_at.desc())
        if actor.role == UserRole.PRODAJALEC:
            query = query.where(CodeOrder.salesperson_id == actor.id)
        if status is not None:
            query = query.where(CodeOrder.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def order_codes(self, order_id: str, actor: User) -> list[QRCode]:
        await self.get(order_id, actor)
        result = await self.db.execute(select(QRCode).where(QRCode.order_id == order_id).order_by(QRCode.code))
        return list(result.scalars().all())

    async def create(self, actor: User, quantity: int, notes: str | None = None) -> CodeOrder:
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1")
        order = CodeOrder(salesperson_id=actor.id, quantity=quantity, notes=notes, status=OrderStatus.PENDING)
        self.db.add(order)
        await flush_changes(self.db, "order")
        return order

    @staticmethod
    def _require_staff(actor: User) -> None:
        if actor.role == UserRole.PRODAJALEC:
            raise PermissionDeniedError("Only inventory staff can process orders")

    def _advance(self, order: CodeOrder, target: OrderStatus) -> None:
        if target not in ORDER_TRANSITIONS[order.status]:
            raise InvalidTransitionError(f"Order is {order.status.value}, cannot become {target.value}")
        order.status = target

    async def approve(self, order_id: str, actor: User) -> tuple[CodeOrder, list[QRCode]]:
        """Odobri in generiraj kode s predpono prodajalca / Approve and generate codes with the seller's prefix."""
        self._require_staff(actor)
        order = await self.get(order_id, actor)
        self._advance(order, OrderStatus.APPROVED)
        codes = await CodeRegistryService(self.db).create_codes(
            order.quantity, actor, owner_id=order.salesperson_id, order_id=order.id
        )
        order.approved_by = actor.id
        order.approved_at = utcnow()
        await flush_changes(self.db, "order")
        log.info("Order %s approved with %d codes", order.id, len(codes))
        return order, codes

    async def reject(self, order_id: str, actor: User, reason: str | None = None) -> CodeOrder:
        self._require_staff(actor)
        order = await self.get(order_id, actor)
        self._advance(order, OrderStatus.REJECTED)
        order.rejection_reason = reason
        await flush_changes(self.db, "order")
        return order

    async def ship(self, order_id: str, actor: User) -> CodeOrder:
        self._require_staff(actor)
        order = await self.get(order_id, actor)
        self._advance(order, OrderStatus.SHIPPED)
        order.shipped_at = utcnow()
        await flush_changes(self.db, "order")
        return order

    async def receive(self, order_id: str, actor: User) -> CodeOrder:
        """Prodajalec potrdi prejem / Salesperson confirms receipt."""
        order = await self.get(order_id, actor)
        self._advance(order, OrderStatus.RECEIVED)
        order.received_at = utcnow()
        await flush_changes(self.db, "order")
        return order
