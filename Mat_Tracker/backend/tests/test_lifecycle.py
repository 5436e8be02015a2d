"""Testi življenjskega cikla / Cycle lifecycle tests."""

from datetime import datetime, timedelta, timezone

import pytest

from mat_tracker.models.company import Company
from mat_tracker.models.cycle import ContractFrequency, CycleStatus
from mat_tracker.models.qr_code import QRCode, QRStatus
from mat_tracker.models.user import User, UserRole
from mat_tracker.services.cycle_lifecycle import CycleService, is_expiring
from mat_tracker.services.errors import (
    ConcurrencyConflictError,
    ConstraintViolationError,
    InvalidTransitionError,
    PermissionDeniedError,
    ValidationError,
)
from mat_tracker.services.geolocation import GeoFix, capture_location, fixed_provider
from mat_tracker.services.pickup_batcher import PickupBatchService
from mat_tracker.utils.timeutils import utcnow


async def _on_test(db, seller, mat_type, make_code, code="GEO-2345", **kwargs):
    qr = await make_code(code, owner=seller)
    service = CycleService(db)
    cycle = await service.create_cycle(qr.id, mat_type.id, seller)
    kwargs.setdefault("new_company", {"name": "Test d.o.o."})
    return await service.put_on_test(cycle.id, seller, **kwargs)


@pytest.mark.asyncio
async def test_create_cycle_activates_code(db, seller, mat_type, make_code):
    qr = await make_code("GEO-2222", owner=seller)
    cycle = await CycleService(db).create_cycle(qr.id, mat_type.id, seller)

    assert cycle.status == CycleStatus.CLEAN
    assert cycle.salesperson_id == seller.id
    assert qr.status == QRStatus.ACTIVE


@pytest.mark.asyncio
async def test_create_cycle_rejects_busy_code(db, seller, mat_type, make_code):
    qr = await make_code("GEO-2222", owner=seller)
    service = CycleService(db)
    await service.create_cycle(qr.id, mat_type.id, seller)

    with pytest.raises(ConstraintViolationError):
        await service.create_cycle(qr.id, mat_type.id, seller)


@pytest.mark.asyncio
async def test_foreign_code_is_denied(db, seller, make_user, mat_type, make_code):
    other = await make_user(UserRole.PRODAJALEC, prefix="STAN")
    qr = await make_code("STAN-2222", owner=other)

    with pytest.raises(PermissionDeniedError):
        await CycleService(db).create_cycle(qr.id, mat_type.id, seller)


@pytest.mark.asyncio
async def test_put_on_test_with_new_company_and_contact(db, seller, mat_type, make_code):
    cycle = await _on_test(
        db, seller, mat_type, make_code,
        new_company={"name": "Acme d.o.o.", "tax_number": "12345678"},
        new_contact={"first_name": "Maja", "phone": "041 000 000"},
        location_provider=fixed_provider(GeoFix(lat=46.0569, lng=14.5058)),
    )

    assert cycle.status == CycleStatus.ON_TEST
    assert cycle.test_start_date is not None
    assert (cycle.location_lat, cycle.location_lng) == (46.0569, 14.5058)
    company = await db.get(Company, cycle.company_id)
    assert company.name == "Acme d.o.o."
    assert company.created_by == seller.id
    assert cycle.contact_id is not None


@pytest.mark.asyncio
async def test_put_on_test_needs_company(db, seller, mat_type, make_code):
    qr = await make_code("GEO-2222", owner=seller)
    service = CycleService(db)
    cycle = await service.create_cycle(qr.id, mat_type.id, seller)

    with pytest.raises(ValidationError):
        await service.put_on_test(cycle.id, seller)
    with pytest.raises(ValidationError):
        await service.put_on_test(cycle.id, seller, new_company={"name": "  "})
    assert cycle.status == CycleStatus.CLEAN


@pytest.mark.asyncio
async def test_geolocation_failure_does_not_block(db, seller, mat_type, make_code):
    async def broken():
        raise RuntimeError("GPS off")

    cycle = await _on_test(db, seller, mat_type, make_code, location_provider=broken)
    assert cycle.status == CycleStatus.ON_TEST
    assert cycle.location_lat is None and cycle.location_lng is None


@pytest.mark.asyncio
async def test_out_of_range_fix_is_discarded(db, seller, mat_type, make_code):
    cycle = await _on_test(db, seller, mat_type, make_code, location_provider=fixed_provider(GeoFix(lat=123.0, lng=0.0)))
    assert cycle.location_lat is None


@pytest.mark.asyncio
async def test_offset_aware_fix_is_accepted(db, seller, mat_type, make_code):
    captured = datetime.now(timezone(timedelta(hours=2)))
    fix = GeoFix(lat=46.0569, lng=14.5058, captured_at=captured)

    cycle = await _on_test(db, seller, mat_type, make_code, location_provider=fixed_provider(fix))
    assert cycle.location_lat == 46.0569
    assert cycle.location_lng == 14.5058


@pytest.mark.asyncio
async def test_capture_location_never_raises():
    stale = GeoFix(lat=46.05, lng=14.5, captured_at=datetime.now(timezone.utc) - timedelta(minutes=5))
    assert await capture_location(fixed_provider(stale)) is None

    fresh = GeoFix(lat=46.05, lng=14.5, captured_at=datetime.now(timezone.utc))
    assert await capture_location(fixed_provider(fresh)) is fresh

    malformed = GeoFix(lat="north", lng=14.5)
    assert await capture_location(fixed_provider(malformed)) is None


@pytest.mark.asyncio
async def test_invalid_transitions(db, seller, mat_type, make_code):
    qr = await make_code("GEO-2222", owner=seller)
    service = CycleService(db)
    cycle = await service.create_cycle(qr.id, mat_type.id, seller)

    with pytest.raises(InvalidTransitionError):
        await service.mark_dirty(cycle.id, seller)
    with pytest.raises(InvalidTransitionError):
        await service.mark_contract_signed(cycle.id, seller, ContractFrequency.ONE_WEEK)
    with pytest.raises(InvalidTransitionError):
        await service.extend_test(cycle.id, seller)
    assert cycle.status == CycleStatus.CLEAN


@pytest.mark.asyncio
async def test_dirty_then_request_pickup(db, seller, mat_type, make_code):
    cycle = await _on_test(db, seller, mat_type, make_code)
    service = CycleService(db)

    await service.mark_dirty(cycle.id, seller)
    assert cycle.status == CycleStatus.DIRTY
    assert cycle.test_end_date is not None

    await service.request_pickup(cycle.id, seller)
    assert cycle.status == CycleStatus.WAITING_DRIVER
    assert cycle.pickup_requested_at is not None

    with pytest.raises(InvalidTransitionError):
        await service.mark_dirty(cycle.id, seller)


@pytest.mark.asyncio
async def test_contract_keeps_status_unless_pickup_requested(db, seller, mat_type, make_code):
    service = CycleService(db)
    first = await _on_test(db, seller, mat_type, make_code, code="GEO-2345")
    await service.mark_contract_signed(first.id, seller, ContractFrequency.FOUR_WEEKS)
    assert first.status == CycleStatus.ON_TEST
    assert first.contract_signed
    assert first.contract_frequency == ContractFrequency.FOUR_WEEKS

    second = await _on_test(db, seller, mat_type, make_code, code="GEO-2346")
    await service.mark_contract_signed(second.id, seller, ContractFrequency.ONE_WEEK, request_pickup=True)
    assert second.status == CycleStatus.WAITING_DRIVER
    assert second.pickup_requested_at == second.contract_signed_at


@pytest.mark.asyncio
async def test_extend_moves_expiry(db, seller, mat_type, make_code):
    start = utcnow() - timedelta(days=8)
    cycle = await _on_test(db, seller, mat_type, make_code, test_start_date=start)
    assert is_expiring(cycle.test_start_date, utcnow(), cycle.extended_count)

    service = CycleService(db)
    await service.extend_test(cycle.id, seller)
    await service.extend_test(cycle.id, seller)
    assert cycle.extended_count == 2
    assert cycle.test_start_date == start
    assert not is_expiring(cycle.test_start_date, utcnow(), cycle.extended_count)


@pytest.mark.asyncio
async def test_extension_limit(db, seller, mat_type, make_code, monkeypatch):
    from mat_tracker.config import settings

    monkeypatch.setattr(settings, "MAX_TEST_EXTENSIONS", 1)
    cycle = await _on_test(db, seller, mat_type, make_code)
    service = CycleService(db)
    await service.extend_test(cycle.id, seller)
    with pytest.raises(InvalidTransitionError):
        await service.extend_test(cycle.id, seller)


@pytest.mark.asyncio
async def test_start_date_correction(db, seller, mat_type, make_code):
    cycle = await _on_test(db, seller, mat_type, make_code)
    service = CycleService(db)
    earlier = utcnow() - timedelta(days=3)

    await service.update_test_start_date(cycle.id, seller, earlier)
    assert cycle.test_start_date == earlier
    with pytest.raises(ValidationError):
        await service.update_test_start_date(cycle.id, seller, utcnow() + timedelta(days=1))

    aware = datetime(2026, 1, 5, 8, 0, tzinfo=timezone(timedelta(hours=2)))
    await service.update_test_start_date(cycle.id, seller, aware)
    assert cycle.test_start_date == datetime(2026, 1, 5, 6, 0)
    with pytest.raises(ValidationError):
        await service.update_test_start_date(cycle.id, seller, datetime.now(timezone.utc) + timedelta(hours=1))


@pytest.mark.asyncio
async def test_location_update_validates(db, seller, mat_type, make_code):
    cycle = await _on_test(db, seller, mat_type, make_code)
    service = CycleService(db)
    await service.update_location(cycle.id, seller, 46.5, 15.6)
    assert cycle.location_lat == 46.5
    with pytest.raises(ValidationError):
        await service.update_location(cycle.id, seller, 91.0, 0.0)


@pytest.mark.asyncio
async def test_seller_cannot_touch_foreign_cycle(db, seller, make_user, mat_type, make_code):
    cycle = await _on_test(db, seller, mat_type, make_code)
    other = await make_user(UserRole.PRODAJALEC, prefix="STAN")

    with pytest.raises(PermissionDeniedError):
        await CycleService(db).mark_dirty(cycle.id, other)
    assert await CycleService(db).list_cycles(other) == []


@pytest.mark.asyncio
async def test_history_records_each_step(db, seller, mat_type, make_code):
    cycle = await _on_test(db, seller, mat_type, make_code)
    service = CycleService(db)
    await service.mark_dirty(cycle.id, seller)

    history = await service.history(cycle.id, seller)
    assert [h.action for h in history] == ["created", "put_on_test", "status_change_to_dirty"]
    assert history[-1].old_status == CycleStatus.ON_TEST
    assert history[-1].new_status == CycleStatus.DIRTY
    assert all(h.performed_by == seller.id for h in history)


@pytest.mark.asyncio
async def test_full_trial_to_contract_and_pickup(db, seller, inventory, mat_type, make_code):
    qr = await make_code("GEO-4K7M", owner=seller)
    service = CycleService(db)

    cycle = await service.create_cycle(qr.id, mat_type.id, seller)
    await service.put_on_test(cycle.id, seller, new_company={"name": "Acme d.o.o."})
    await service.mark_contract_signed(cycle.id, seller, ContractFrequency.TWO_WEEKS, request_pickup=True)
    assert cycle.status == CycleStatus.WAITING_DRIVER
    assert cycle.contract_frequency == ContractFrequency.TWO_WEEKS

    batches = PickupBatchService(db)
    pickup = await batches.create_batch([cycle.id], inventory, assigned_driver="Marko")
    await batches.start_batch(pickup.id)
    await batches.complete_batch(pickup.id, inventory)

    assert cycle.status == CycleStatus.COMPLETED
    assert cycle.completed_at is not None
    assert qr.status == QRStatus.AVAILABLE

    # Koda je spet prosta za nov cikel
    again = await service.create_cycle(qr.id, mat_type.id, seller)
    assert again.id != cycle.id
    assert again.status == CycleStatus.CLEAN


# --- Sočasnost / Concurrency ---

@pytest.mark.asyncio
async def test_stale_version_is_rejected(db, session_factory, seller, mat_type, make_code):
    cycle = await _on_test(db, seller, mat_type, make_code)
    await db.commit()

    async with session_factory() as first, session_factory() as second:
        seller_a = await first.get(User, seller.id)
        seller_b = await second.get(User, seller.id)
        await CycleService(second).get(cycle.id, seller_b)

        await CycleService(first).mark_dirty(cycle.id, seller_a)
        await first.commit()

        with pytest.raises(ConcurrencyConflictError):
            await CycleService(second).request_pickup(cycle.id, seller_b)


@pytest.mark.asyncio
async def test_parallel_activation_of_one_code(db, session_factory, seller, mat_type, make_code):
    qr = await make_code("GEO-2222", owner=seller)
    await db.commit()

    async with session_factory() as first, session_factory() as second:
        seller_a = await first.get(User, seller.id)
        seller_b = await second.get(User, seller.id)
        await second.get(QRCode, qr.id)

        await CycleService(first).create_cycle(qr.id, mat_type.id, seller_a)
        await first.commit()

        with pytest.raises(ConstraintViolationError):
            await CycleService(second).create_cycle(qr.id, mat_type.id, seller_b)
