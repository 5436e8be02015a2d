"""
Življenjski cikel predpražnika / Doormat cycle lifecycle.

Stanja / States: clean -> on_test -> {dirty, waiting_driver} -> completed.
Potek testa se ne shranjuje; izračuna se ob branju iz (now, test_start_date).
Trial expiry is never stored; it is derived at read time from (now, test_start_date).
"""

import json
import logging
import math
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.config import settings
from mat_tracker.models.cycle import ContractFrequency, Cycle, CycleHistory, CycleStatus
from mat_tracker.models.mat_type import MatType
from mat_tracker.models.qr_code import QRCode, QRStatus
from mat_tracker.models.user import User
from mat_tracker.services.companies import CompanyService
from mat_tracker.services.errors import (
    ConstraintViolationError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    flush_changes,
)
from mat_tracker.services.geolocation import LocationProvider, capture_location
from mat_tracker.utils.auth import is_scoped_to_self
from mat_tracker.utils.timeutils import to_naive_utc, utcnow, whole_days_between

log = logging.getLogger(__name__)

# Dovoljeni prehodi / Allowed transitions
TRANSITIONS: dict[CycleStatus, frozenset[CycleStatus]] = {
    CycleStatus.CLEAN: frozenset({CycleStatus.ON_TEST}),
    CycleStatus.ON_TEST: frozenset({CycleStatus.DIRTY, CycleStatus.WAITING_DRIVER}),
    CycleStatus.DIRTY: frozenset({CycleStatus.WAITING_DRIVER, CycleStatus.COMPLETED}),
    CycleStatus.WAITING_DRIVER: frozenset({CycleStatus.COMPLETED}),
    CycleStatus.COMPLETED: frozenset(),
}


def can_transition(current: CycleStatus, target: CycleStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: CycleStatus, target: CycleStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(f"Cannot move cycle from {current.value} to {target.value}")


# --- Izračun poteka / Expiry derivation ---

def expiry_reference(test_start_date: datetime, extended_count: int = 0) -> datetime:
    """Začetek trenutnega 7-dnevnega okna / Start of the current trial window.

    Vsako podaljšanje premakne referenco za EXTENSION_DAYS naprej.
    """
    return test_start_date + timedelta(days=settings.EXTENSION_DAYS * extended_count)


def trial_end(test_start_date: datetime, extended_count: int = 0) -> datetime:
    return expiry_reference(test_start_date, extended_count) + timedelta(days=settings.TRIAL_DAYS)


def is_expiring(test_start_date: datetime | None, now: datetime, extended_count: int = 0) -> bool:
    """Manj kot dan do konca ali že pretečen / Less than a day left, or already overdue.

    Točno 6 dni ni še v izteku, 7 dni in več je.
    """
    if test_start_date is None:
        return False
    elapsed = now - expiry_reference(test_start_date, extended_count)
    return elapsed > timedelta(days=settings.TRIAL_DAYS - settings.EXPIRING_WINDOW_DAYS)


def days_on_test(test_start_date: datetime | None, now: datetime) -> int:
    if test_start_date is None:
        return 0
    return whole_days_between(test_start_date, now)


def days_remaining(test_start_date: datetime, now: datetime, extended_count: int = 0) -> int:
    """Preostali dnevi (navzgor), negativno = zamuda / Days left rounded up, negative when overdue."""
    seconds = (trial_end(test_start_date, extended_count) - now).total_seconds()
    return math.ceil(seconds / 86400)


def neglect_level(test_start_date: datetime | None, now: datetime) -> str | None:
    """'critical' (>=30 dni), 'warning' (>=20 dni) ali None."""
    days = days_on_test(test_start_date, now)
    if days >= settings.TEST_CRITICAL_DAYS:
        return "critical"
    if days >= settings.TEST_WARNING_DAYS:
        return "warning"
    return None


class CycleService:
    """Prehodi ciklov z zgodovino / Cycle transitions with history."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _history(
        self,
        cycle: Cycle,
        action: str,
        actor: User | None,
        old_status: CycleStatus | None,
        metadata: dict | None = None,
    ) -> None:
        self.db.add(CycleHistory(
            cycle_id=cycle.id,
            action=action,
            old_status=old_status,
            new_status=cycle.status,
            metadata_json=json.dumps(metadata, default=str) if metadata else None,
            performed_by=actor.id if actor else None,
            created_at=utcnow(),
        ))

    async def get(self, cycle_id: str, actor: User) -> Cycle:
        cycle = await self.db.get(Cycle, cycle_id)
        if not cycle:
            raise NotFoundError("Cycle not found")
        if is_scoped_to_self(actor.role) and cycle.salesperson_id != actor.id:
            raise PermissionDeniedError("Cycle belongs to another salesperson")
        return cycle

    async def list_cycles(
        self,
        actor: User,
        status: CycleStatus | None = None,
        salesperson_id: str | None = None,
        open_only: bool = True,
    ) -> list[Cycle]:
        query = select(Cycle).order_by(Cycle.created_at.desc())
        if is_scoped_to_self(actor.role):
            salesperson_id = actor.id
        if salesperson_id:
            query = query.where(Cycle.salesperson_id == salesperson_id)
        if status is not None:
            query = query.where(Cycle.status == status)
        elif open_only:
            query = query.where(Cycle.status != CycleStatus.COMPLETED)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def history(self, cycle_id: str, actor: User) -> list[CycleHistory]:
        await self.get(cycle_id, actor)
        result = await self.db.execute(
            select(CycleHistory).where(CycleHistory.cycle_id == cycle_id).order_by(CycleHistory.created_at)
        )
        return list(result.scalars().all())

    async def recent_history(self, actor: User, limit: int = 20) -> list[CycleHistory]:
        query = select(CycleHistory).order_by(CycleHistory.created_at.desc()).limit(limit)
        if is_scoped_to_self(actor.role):
            query = query.join(Cycle, Cycle.id == CycleHistory.cycle_id).where(Cycle.salesperson_id == actor.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_cycle(
        self, qr_code_id: str, mat_type_id: str, actor: User, notes: str | None = None
    ) -> Cycle:
        """Aktiviraj prosto kodo z tipom predpražnika / Activate a free code with a mat type."""
        qr = await self.db.get(QRCode, qr_code_id)
        if not qr:
            raise NotFoundError("QR code not found")
        if is_scoped_to_self(actor.role) and qr.owner_id != actor.id:
            raise PermissionDeniedError("QR code belongs to another salesperson")
        if qr.status != QRStatus.AVAILABLE:
            raise ConstraintViolationError(f"Code {qr.code} is not available ({qr.status.value})")
        if not await self.db.get(MatType, mat_type_id):
            raise NotFoundError("Mat type not found")

        cycle = Cycle(
            qr_code_id=qr.id,
            salesperson_id=qr.owner_id or actor.id,
            mat_type_id=mat_type_id,
            status=CycleStatus.CLEAN,
            notes=notes,
        )
        self.db.add(cycle)
        qr.status = QRStatus.ACTIVE
        # Delni unikatni indeks zavrne drugi odprt cikel / Partial unique index rejects a second open cycle
        await flush_changes(self.db, "cycle")

        self._history(cycle, "created", actor, None)
        log.info("Cycle %s created for code %s", cycle.id, qr.code)
        return cycle

    async def put_on_test(
        self,
        cycle_id: str,
        actor: User,
        company_id: str | None = None,
        new_company: dict | None = None,
        contact_id: str | None = None,
        new_contact: dict | None = None,
        location_provider: LocationProvider | None = None,
        test_start_date: datetime | None = None,
    ) -> Cycle:
        """clean -> on_test pri stranki / Place the mat on trial at a customer.

        Novo podjetje se ustvari v isti transakciji; če ne uspe, cikel ostane clean.
        """
        cycle = await self.get(cycle_id, actor)
        ensure_transition(cycle.status, CycleStatus.ON_TEST)

        companies = CompanyService(self.db)
        if company_id:
            await companies.get(company_id)
        elif new_company:
            company_id = (await companies.create(new_company, actor)).id
        else:
            raise ValidationError("A company is required to put a mat on test")

        if contact_id:
            await companies.get_contact(contact_id, company_id=company_id)
        elif new_contact:
            contact_id = (await companies.add_contact(company_id, new_contact)).id

        fix = await capture_location(location_provider)

        old_status = cycle.status
        cycle.status = CycleStatus.ON_TEST
        cycle.company_id = company_id
        cycle.contact_id = contact_id
        cycle.test_start_date = to_naive_utc(test_start_date) or utcnow()
        if fix is not None:
            cycle.location_lat = fix.lat
            cycle.location_lng = fix.lng
        await flush_changes(self.db, "cycle")

        self._history(cycle, "put_on_test", actor, old_status, {
            "company_id": company_id,
            "contact_id": contact_id,
            "has_location": fix is not None,
        })
        log.info("Cycle %s put on test at company %s", cycle.id, company_id)
        return cycle

    async def transition(self, cycle: Cycle, target: CycleStatus, actor: User, **stamps) -> Cycle:
        ensure_transition(cycle.status, target)
        old_status = cycle.status
        cycle.status = target
        for key, value in stamps.items():
            setattr(cycle, key, value)
        await flush_changes(self.db, "cycle")
        self._history(cycle, f"status_change_to_{target.value}", actor, old_status)
        log.info("Cycle %s: %s -> %s", cycle.id, old_status.value, target.value)
        return cycle

    async def mark_dirty(self, cycle_id: str, actor: User) -> Cycle:
        cycle = await self.get(cycle_id, actor)
        return await self.transition(cycle, CycleStatus.DIRTY, actor, test_end_date=utcnow())

    async def request_pickup(self, cycle_id: str, actor: User) -> Cycle:
        cycle = await self.get(cycle_id, actor)
        return await self.transition(cycle, CycleStatus.WAITING_DRIVER, actor, pickup_requested_at=utcnow())

    async def mark_contract_signed(
        self,
        cycle_id: str,
        actor: User,
        frequency: ContractFrequency,
        request_pickup: bool = False,
    ) -> Cycle:
        """Podpisana pogodba; status ostane on_test / Contract signed; status stays on_test.

        Z request_pickup se cikel hkrati premakne v waiting_driver.
        """
        cycle = await self.get(cycle_id, actor)
        if cycle.status != CycleStatus.ON_TEST:
            raise InvalidTransitionError("A contract can only be signed while the mat is on test")
        if frequency is None:
            raise ValidationError("Contract frequency is required")

        now = utcnow()
        cycle.contract_signed = True
        cycle.contract_signed_at = now
        cycle.contract_frequency = ContractFrequency(frequency)
        if request_pickup:
            cycle.status = CycleStatus.WAITING_DRIVER
            cycle.pickup_requested_at = now
        await flush_changes(self.db, "cycle")

        self._history(cycle, "contract_signed", actor, CycleStatus.ON_TEST, {"frequency": cycle.contract_frequency.value})
        log.info("Contract signed on cycle %s (%s)", cycle.id, cycle.contract_frequency.value)
        return cycle

    async def extend_test(self, cycle_id: str, actor: User) -> Cycle:
        """Podaljšaj test za EXTENSION_DAYS / Extend the trial by EXTENSION_DAYS."""
        cycle = await self.get(cycle_id, actor)
        if cycle.status != CycleStatus.ON_TEST:
            raise InvalidTransitionError("Only a cycle on test can be extended")
        limit = settings.MAX_TEST_EXTENSIONS
        if limit is not None and cycle.extended_count >= limit:
            raise InvalidTransitionError(f"Trial already extended {cycle.extended_count} times")

        cycle.extended_count += 1
        await flush_changes(self.db, "cycle")

        new_end = trial_end(cycle.test_start_date, cycle.extended_count)
        self._history(cycle, "test_extended", actor, CycleStatus.ON_TEST, {
            "extended_count": cycle.extended_count,
            "new_end_date": new_end.isoformat(),
        })
        return cycle

    async def update_location(self, cycle_id: str, actor: User, lat: float, lng: float) -> Cycle:
        if not (-90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0):
            raise ValidationError("Coordinates out of range")
        cycle = await self.get(cycle_id, actor)
        cycle.location_lat = lat
        cycle.location_lng = lng
        await flush_changes(self.db, "cycle")
        return cycle

    async def update_test_start_date(self, cycle_id: str, actor: User, start: datetime) -> Cycle:
        """Popravek začetka testa / Correct the trial start date."""
        start = to_naive_utc(start)
        cycle = await self.get(cycle_id, actor)
        if cycle.status != CycleStatus.ON_TEST:
            raise InvalidTransitionError("Only a cycle on test has a start date to correct")
        if start > utcnow():
            raise ValidationError("Test start date cannot be in the future")
        old = cycle.test_start_date
        cycle.test_start_date = start
        await flush_changes(self.db, "cycle")
        self._history(cycle, "test_start_corrected", actor, cycle.status, {"old": old, "new": start})
        return cycle

    async def complete(self, cycle: Cycle, actor: User | None, when: datetime) -> Cycle:
        """Zaključi cikel ob prevzemu / Complete a cycle on batch pickup.

        Klice samo paketni prevzem / Only called by pickup batch completion.
        """
        ensure_transition(cycle.status, CycleStatus.COMPLETED)
        old_status = cycle.status
        cycle.status = CycleStatus.COMPLETED
        cycle.completed_at = when
        cycle.driver_pickup_at = when
        self._history(cycle, "completed", actor, old_status)
        return cycle
