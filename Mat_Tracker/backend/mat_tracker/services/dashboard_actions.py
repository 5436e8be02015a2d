"""
Akcije za nadzorno ploščo / Dashboard action items.
Vse se izračuna ob vsakem klicu iz trenutnega stanja ciklov in prevzemov.
Everything is recomputed on each call from current cycle and pickup state.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.config import settings
from mat_tracker.models.cycle import Cycle, CycleStatus
from mat_tracker.models.driver_pickup import DriverPickup, DriverPickupItem, PickupStatus
from mat_tracker.models.user import User
from mat_tracker.utils.timeutils import utcnow, whole_days_between

URGENT = "urgent"
TODAY = "today"


@dataclass
class SellerCycle:
    seller_id: str
    seller_name: str
    seller_prefix: str | None
    status: CycleStatus
    test_start_date: datetime | None = None


@dataclass
class PickupSnapshot:
    id: str
    status: PickupStatus
    created_at: datetime
    assigned_driver: str | None
    item_count: int


@dataclass
class ActionItem:
    id: str
    type: str
    title: str
    description: str
    priority: str
    link: str
    count: int | None = None
    days: int | None = None
    meta: dict = field(default_factory=dict)


@dataclass
class DashboardActions:
    urgent: list[ActionItem]
    today: list[ActionItem]

    @property
    def total_urgent(self) -> int:
        return len(self.urgent)

    @property
    def total_today(self) -> int:
        return len(self.today)


def _seller_label(name: str, prefix: str | None) -> str:
    return f"[{prefix}] {name}" if prefix else name


def _test_actions(cycles: list[SellerCycle], now: datetime) -> list[ActionItem]:
    by_seller: dict[str, dict] = {}
    for cycle in cycles:
        if cycle.status != CycleStatus.ON_TEST or cycle.test_start_date is None:
            continue
        days = whole_days_between(cycle.test_start_date, now)
        seller = by_seller.setdefault(
            cycle.seller_id, {"name": cycle.seller_name, "critical": 0, "warning": 0, "max_days": 0}
        )
        seller["max_days"] = max(seller["max_days"], days)
        if days >= settings.TEST_CRITICAL_DAYS:
            seller["critical"] += 1
        elif days >= settings.TEST_WARNING_DAYS:
            seller["warning"] += 1

    actions = []
    for seller_id, data in by_seller.items():
        meta = {"seller_id": seller_id, "seller_name": data["name"]}
        if data["critical"]:
            actions.append(ActionItem(
                id=f"critical-test-{seller_id}",
                type="critical_test",
                title=f"{data['critical']}x na testu >{settings.TEST_CRITICAL_DAYS} dni",
                description=f"{data['name']} - najdlje {data['max_days']} dni",
                priority=URGENT,
                link=f"/inventar/prodajalec/{seller_id}",
                count=data["critical"],
                days=data["max_days"],
                meta=meta,
            ))
        if data["warning"]:
            actions.append(ActionItem(
                id=f"warning-test-{seller_id}",
                type="long_test",
                title=f"{data['warning']}x na testu >{settings.TEST_WARNING_DAYS} dni",
                description=f"{data['name']} - kontaktiraj stranke",
                priority=TODAY,
                link=f"/inventar/prodajalec/{seller_id}",
                count=data["warning"],
                days=data["max_days"],
                meta=meta,
            ))
    return actions


def _pickup_actions(pickups: list[PickupSnapshot], now: datetime) -> list[ActionItem]:
    actions = []
    for pickup in pickups:
        driver = pickup.assigned_driver or "brez šoferja"
        description = f"{pickup.item_count} predpražnikov - {driver}"
        if pickup.status == PickupStatus.PENDING:
            days = whole_days_between(pickup.created_at, now)
            if days >= settings.PICKUP_OLD_DAYS:
                actions.append(ActionItem(
                    id=f"old-pickup-{pickup.id}",
                    type="old_pickup",
                    title=f"Prevzem čaka {days} dni",
                    description=description,
                    priority=URGENT,
                    link="/inventar/prevzemi",
                    days=days,
                    meta={"pickup_id": pickup.id},
                ))
        elif pickup.status == PickupStatus.IN_PROGRESS:
            actions.append(ActionItem(
                id=f"active-pickup-{pickup.id}",
                type="active_pickup",
                title="Prevzem v teku",
                description=description,
                priority=TODAY,
                link="/inventar/prevzemi",
                meta={"pickup_id": pickup.id},
            ))
    return actions


def _backlog_actions(cycles: list[SellerCycle]) -> list[ActionItem]:
    counts: dict[str, dict] = defaultdict(lambda: {"dirty": 0, "waiting": 0})
    labels: dict[str, tuple[str, str | None]] = {}
    for cycle in cycles:
        if cycle.status == CycleStatus.DIRTY:
            counts[cycle.seller_id]["dirty"] += 1
        elif cycle.status == CycleStatus.WAITING_DRIVER:
            counts[cycle.seller_id]["waiting"] += 1
        else:
            continue
        labels[cycle.seller_id] = (cycle.seller_name, cycle.seller_prefix)

    actions = []
    for seller_id, data in counts.items():
        name, prefix = labels[seller_id]
        meta = {"seller_id": seller_id, "seller_name": name}
        if data["dirty"] >= settings.DIRTY_BACKLOG_THRESHOLD:
            actions.append(ActionItem(
                id=f"dirty-seller-{seller_id}",
                type="dirty_seller",
                title=f"{data['dirty']}x umazanih",
                description=f"{_seller_label(name, prefix)} - organiziraj prevzem",
                priority=TODAY,
                link=f"/inventar/prodajalec/{seller_id}",
                count=data["dirty"],
                meta=meta,
            ))
        if data["waiting"] > 0:
            actions.append(ActionItem(
                id=f"waiting-driver-{seller_id}",
                type="waiting_driver",
                title=f"{data['waiting']}x čaka šoferja",
                description=_seller_label(name, prefix),
                priority=TODAY,
                link=f"/inventar/prodajalec/{seller_id}",
                count=data["waiting"],
                meta=meta,
            ))
    return actions


def build_dashboard_actions(
    cycles: list[SellerCycle], pickups: list[PickupSnapshot], now: datetime
) -> DashboardActions:
    """Sestavi nujne in današnje akcije / Build urgent and today action lists.

    urgent: po dnevih padajoče, today: po številu padajoče.
    """
    actions = _test_actions(cycles, now) + _pickup_actions(pickups, now) + _backlog_actions(cycles)
    urgent = sorted((a for a in actions if a.priority == URGENT), key=lambda a: a.days or 0, reverse=True)
    today = sorted((a for a in actions if a.priority == TODAY), key=lambda a: a.count or 0, reverse=True)
    return DashboardActions(urgent=urgent, today=today)


async def load_dashboard_actions(db: AsyncSession, now: datetime | None = None) -> DashboardActions:
    """Naloži stanje in sestavi akcije / Load current state and build the actions."""
    now = now or utcnow()

    cycle_rows = await db.execute(
        select(Cycle.salesperson_id, Cycle.status, Cycle.test_start_date, User.first_name, User.last_name, User.code_prefix)
        .join(User, User.id == Cycle.salesperson_id)
        .where(Cycle.status.in_([CycleStatus.ON_TEST, CycleStatus.DIRTY, CycleStatus.WAITING_DRIVER]))
    )
    cycles = [
        SellerCycle(
            seller_id=seller_id,
            seller_name=f"{first or ''} {last or ''}".strip(),
            seller_prefix=prefix,
            status=status,
            test_start_date=start,
        )
        for seller_id, status, start, first, last, prefix in cycle_rows.all()
    ]

    pickup_rows = await db.execute(
        select(
            DriverPickup.id,
            DriverPickup.status,
            DriverPickup.created_at,
            DriverPickup.assigned_driver,
            func.count(DriverPickupItem.id),
        )
        .outerjoin(DriverPickupItem, DriverPickupItem.pickup_id == DriverPickup.id)
        .where(DriverPickup.status.in_([PickupStatus.PENDING, PickupStatus.IN_PROGRESS]))
        .group_by(DriverPickup.id)
    )
    pickups = [PickupSnapshot(*row) for row in pickup_rows.all()]

    return build_dashboard_actions(cycles, pickups, now)
