"""
Paketni prevzemi šoferjev / Driver pickup batching.
pending -> in_progress -> completed; zaključek zaključi vse cikle v paketu.
Completing a batch completes every cycle in it and frees their QR codes.
"""

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.config import settings
from mat_tracker.models.cycle import Cycle, CycleStatus
from mat_tracker.models.driver_pickup import DriverPickup, DriverPickupItem, PickupStatus
from mat_tracker.models.qr_code import QRCode
from mat_tracker.models.user import User
from mat_tracker.services.audit import log_audit
from mat_tracker.services.code_registry import CodeRegistryService
from mat_tracker.services.cycle_lifecycle import CycleService
from mat_tracker.services.errors import (
    ConstraintViolationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    flush_changes,
)
from mat_tracker.utils.timeutils import utcnow

log = logging.getLogger(__name__)

PICKUP_CANDIDATE_STATUSES = (CycleStatus.DIRTY, CycleStatus.WAITING_DRIVER)


class PickupBatchService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, pickup_id: str) -> DriverPickup:
        pickup = await self.db.get(DriverPickup, pickup_id)
        if not pickup:
            raise NotFoundError("Pickup not found")
        return pickup

    async def list_batches(self, statuses: list[PickupStatus] | None = None) -> list[DriverPickup]:
        query = select(DriverPickup).order_by(DriverPickup.created_at.desc())
        if statuses:
            query = query.where(DriverPickup.status.in_(statuses))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def _cycles_in_open_batches(self, cycle_ids: list[str]) -> set[str]:
        result = await self.db.execute(
            select(DriverPickupItem.cycle_id)
            .join(DriverPickup, DriverPickup.id == DriverPickupItem.pickup_id)
            .where(
                DriverPickupItem.cycle_id.in_(cycle_ids),
                DriverPickup.status != PickupStatus.COMPLETED,
            )
        )
        return set(result.scalars().all())

    async def create_batch(
        self,
        cycle_ids: list[str],
        actor: User,
        scheduled_date: date | None = None,
        notes: str | None = None,
        assigned_driver: str | None = None,
    ) -> DriverPickup:
        """Nov paket iz umazanih/čakajočih ciklov / New batch from dirty or waiting cycles.

        Umazani cikli se premaknejo v waiting_driver.
        """
        if not cycle_ids:
            raise ValidationError("A pickup needs at least one cycle")
        if len(set(cycle_ids)) != len(cycle_ids):
            raise ValidationError("Duplicate cycles in pickup")

        result = await self.db.execute(select(Cycle).where(Cycle.id.in_(cycle_ids)))
        cycles = {c.id: c for c in result.scalars().all()}
        missing = [cid for cid in cycle_ids if cid not in cycles]
        if missing:
            raise NotFoundError(f"Cycles not found: {', '.join(missing)}")

        for cycle in cycles.values():
            if cycle.status not in PICKUP_CANDIDATE_STATUSES:
                raise InvalidTransitionError(
                    f"Cycle {cycle.id} is {cycle.status.value}, only dirty or waiting_driver can be picked up"
                )
        busy = await self._cycles_in_open_batches(cycle_ids)
        if busy:
            raise ConstraintViolationError(f"Cycles already in an open pickup: {', '.join(sorted(busy))}")

        now = utcnow()
        pickup = DriverPickup(
            status=PickupStatus.PENDING,
            scheduled_date=scheduled_date,
            assigned_driver=assigned_driver,
            notes=notes,
            created_by=actor.id,
            created_at=now,
            items=[DriverPickupItem(cycle_id=cid) for cid in cycle_ids],
        )
        self.db.add(pickup)

        lifecycle = CycleService(self.db)
        for cycle in cycles.values():
            if cycle.status == CycleStatus.DIRTY:
                await lifecycle.transition(cycle, CycleStatus.WAITING_DRIVER, actor, pickup_requested_at=now)

        await flush_changes(self.db, "pickup")
        log.info("Pickup %s created with %d cycles", pickup.id, len(cycle_ids))
        return pickup

    async def update_batch(self, pickup_id: str, data: dict) -> DriverPickup:
        pickup = await self.get(pickup_id)
        if pickup.status == PickupStatus.COMPLETED:
            raise InvalidTransitionError("A completed pickup cannot be edited")
        for key in ("scheduled_date", "assigned_driver", "notes"):
            if key in data:
                setattr(pickup, key, data[key])
        await flush_changes(self.db, "pickup")
        return pickup

    async def start_batch(self, pickup_id: str) -> DriverPickup:
        pickup = await self.get(pickup_id)
        if pickup.status != PickupStatus.PENDING:
            raise InvalidTransitionError(f"Pickup is {pickup.status.value}, expected pending")
        pickup.status = PickupStatus.IN_PROGRESS
        pickup.started_at = utcnow()
        await flush_changes(self.db, "pickup")
        log.info("Pickup %s started", pickup.id)
        return pickup

    async def _get_item(self, pickup_id: str, item_id: str) -> tuple[DriverPickup, DriverPickupItem]:
        pickup = await self.get(pickup_id)
        item = next((i for i in pickup.items if i.id == item_id), None)
        if item is None:
            raise NotFoundError("Pickup item not found")
        if pickup.status == PickupStatus.COMPLETED:
            raise InvalidTransitionError("Items of a completed pickup cannot change")
        return pickup, item

    async def toggle_item(self, pickup_id: str, item_id: str) -> DriverPickupItem:
        """Preklopi 'pobrano' / Flip the picked-up flag."""
        _, item = await self._get_item(pickup_id, item_id)
        item.picked_up = not item.picked_up
        item.picked_up_at = utcnow() if item.picked_up else None
        await flush_changes(self.db, "pickup item")
        return item

    async def set_item_notes(self, pickup_id: str, item_id: str, notes: str | None) -> DriverPickupItem:
        _, item = await self._get_item(pickup_id, item_id)
        item.notes = notes
        await flush_changes(self.db, "pickup item")
        return item

    async def complete_batch(self, pickup_id: str, actor: User) -> DriverPickup:
        """Zaključi paket / Complete a batch.

        Vsi cikli -> completed, QR kode -> available, vse postavke -> pobrano.
        Nepobrane postavke ne blokirajo, razen če PICKUP_REQUIRE_ALL_ITEMS.
        Zaključi se lahko tudi paket v stanju pending, brez start_batch.
        """
        pickup = await self.get(pickup_id)
        if pickup.status == PickupStatus.COMPLETED:
            raise InvalidTransitionError("Pickup is already completed")
        unpicked = [i for i in pickup.items if not i.picked_up]
        if settings.PICKUP_REQUIRE_ALL_ITEMS and unpicked:
            raise InvalidTransitionError(f"{len(unpicked)} items are not marked as picked up")

        now = utcnow()
        cycle_ids = [i.cycle_id for i in pickup.items]
        result = await self.db.execute(select(Cycle).where(Cycle.id.in_(cycle_ids)))
        cycles = list(result.scalars().all())

        qr_result = await self.db.execute(select(QRCode).where(QRCode.id.in_([c.qr_code_id for c in cycles])))
        codes = {qr.id: qr for qr in qr_result.scalars().all()}

        lifecycle = CycleService(self.db)
        registry = CodeRegistryService(self.db)
        for cycle in cycles:
            await lifecycle.complete(cycle, actor, now)
            registry.reset_code(codes[cycle.qr_code_id], now)

        for item in pickup.items:
            if not item.picked_up:
                item.picked_up = True
                item.picked_up_at = now

        pickup.status = PickupStatus.COMPLETED
        pickup.completed_at = now
        await flush_changes(self.db, "pickup")

        log.info("Pickup %s completed: %d cycles, %d were unconfirmed", pickup.id, len(cycles), len(unpicked))
        log_audit(self.db, "driver_pickup", pickup.id, "COMPLETE", actor, {
            "cycles": cycle_ids,
            "unconfirmed_items": len(unpicked),
        })
        return pickup

    async def delete_batch(self, pickup_id: str, actor: User) -> None:
        """Briši nezaključen paket; cikli ostanejo nespremenjeni / Delete an open batch, cycles untouched."""
        pickup = await self.get(pickup_id)
        if pickup.status == PickupStatus.COMPLETED:
            raise InvalidTransitionError("A completed pickup cannot be deleted")
        log_audit(self.db, "driver_pickup", pickup.id, "DELETE", actor, {
            "cycles": [i.cycle_id for i in pickup.items],
        })
        await self.db.delete(pickup)
        await flush_changes(self.db, "pickup")
        log.info("Pickup %s deleted", pickup_id)
