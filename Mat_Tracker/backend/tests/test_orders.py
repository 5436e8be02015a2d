"""Testi QR kod in naročil / QR code registry and order tests."""

import pytest
from sqlalchemy import select

from mat_tracker.models.audit import AuditLog
from mat_tracker.models.order import OrderStatus
from mat_tracker.models.qr_code import QRCode, QRStatus
from mat_tracker.models.user import UserRole
from mat_tracker.services import code_registry
from mat_tracker.services.code_registry import CodeRegistryService
from mat_tracker.services.cycle_lifecycle import CycleService
from mat_tracker.services.errors import (
    CodeGenerationShortfallError,
    ConstraintViolationError,
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from mat_tracker.services.orders import OrderService


# --- Register kod / Code registry ---

@pytest.mark.asyncio
async def test_generate_for_owner_uses_prefix(db, seller, inventory):
    codes = await CodeRegistryService(db).create_codes(5, inventory, owner_id=seller.id)

    assert len(codes) == 5
    assert all(c.code.startswith("GEO-") for c in codes)
    assert all(c.status == QRStatus.AVAILABLE and c.owner_id == seller.id for c in codes)

    audit = (await db.execute(select(AuditLog).where(AuditLog.action == "GENERATE"))).scalars().all()
    assert len(audit) == 1 and audit[0].user == inventory.email


@pytest.mark.asyncio
async def test_generate_unowned_then_assign(db, seller, inventory):
    registry = CodeRegistryService(db)
    codes = await registry.create_codes(3, inventory, prefix="STOCK")
    assert all(c.status == QRStatus.PENDING and c.owner_id is None for c in codes)

    await registry.assign_owner([c.id for c in codes], seller.id, inventory)
    assert all(c.status == QRStatus.AVAILABLE and c.owner_id == seller.id for c in codes)

    with pytest.raises(InvalidTransitionError):
        await registry.assign_owner([codes[0].id], seller.id, inventory)
    with pytest.raises(ValidationError):
        await registry.assign_owner([codes[0].id], inventory.id, inventory)


@pytest.mark.asyncio
async def test_generate_shortfall_persists_nothing(db, inventory, monkeypatch):
    original = code_registry.generate_unique_codes
    monkeypatch.setattr(
        code_registry,
        "generate_unique_codes",
        lambda prefix, count, existing: original(prefix, count, existing, choice=lambda alphabet: "2"),
    )
    registry = CodeRegistryService(db)

    with pytest.raises(CodeGenerationShortfallError):
        await registry.create_codes(2, inventory, prefix="GEO")
    assert (await db.execute(select(QRCode))).scalars().all() == []


@pytest.mark.asyncio
async def test_generated_codes_avoid_existing(db, inventory, make_code):
    await make_code("GEO-2222")
    registry = CodeRegistryService(db)
    codes = await registry.create_codes(50, inventory, prefix="GEO")
    assert "GEO-2222" not in {c.code for c in codes}


@pytest.mark.asyncio
async def test_delete_code_with_open_cycle(db, seller, inventory, mat_type, make_code):
    registry = CodeRegistryService(db)
    busy = await make_code("GEO-2222", owner=seller)
    free = await make_code("GEO-3333", owner=seller)
    await CycleService(db).create_cycle(busy.id, mat_type.id, seller)

    with pytest.raises(ConstraintViolationError):
        await registry.delete_code(busy.id, inventory)
    await registry.delete_code(free.id, inventory)
    assert [c.code for c in await registry.list_codes(owner_id=seller.id)] == ["GEO-2222"]


@pytest.mark.asyncio
async def test_inventory_by_seller(db, seller, inventory, mat_type, make_code):
    registry = CodeRegistryService(db)
    active = await make_code("GEO-2222", owner=seller)
    await make_code("GEO-3333", owner=seller)
    await make_code("GEO-4444", owner=seller)
    await CycleService(db).create_cycle(active.id, mat_type.id, seller)

    (row,) = await registry.inventory_by_seller()
    assert row["seller_id"] == seller.id
    assert row["code_prefix"] == "GEO"
    assert row["free_codes"] == 2
    assert row["clean"] == 1
    assert row["total"] == 1


# --- Naročila / Orders ---

@pytest.mark.asyncio
async def test_order_lifecycle(db, seller, inventory):
    service = OrderService(db)
    order = await service.create(seller, 4, notes="Za sejem")
    assert order.status == OrderStatus.PENDING

    order, codes = await service.approve(order.id, inventory)
    assert order.status == OrderStatus.APPROVED
    assert order.approved_by == inventory.id
    assert len(codes) == 4
    assert all(c.order_id == order.id and c.owner_id == seller.id for c in codes)
    assert len(await service.order_codes(order.id, seller)) == 4

    await service.ship(order.id, inventory)
    order = await service.receive(order.id, seller)
    assert order.status == OrderStatus.RECEIVED
    assert order.shipped_at and order.received_at


@pytest.mark.asyncio
async def test_order_rules(db, seller, make_user, inventory):
    service = OrderService(db)
    order = await service.create(seller, 2)
    other = await make_user(UserRole.PRODAJALEC, prefix="STAN")

    with pytest.raises(ValidationError):
        await service.create(seller, 0)
    with pytest.raises(PermissionDeniedError):
        await service.approve(order.id, seller)
    with pytest.raises(PermissionDeniedError):
        await service.get(order.id, other)
    with pytest.raises(InvalidTransitionError):
        await service.ship(order.id, inventory)

    await service.reject(order.id, inventory, reason="Preveč kod na zalogi")
    assert order.rejection_reason == "Preveč kod na zalogi"
    with pytest.raises(InvalidTransitionError):
        await service.approve(order.id, inventory)

    assert await service.list_orders(other) == []
    assert [o.id for o in await service.list_orders(inventory, OrderStatus.REJECTED)] == [order.id]
