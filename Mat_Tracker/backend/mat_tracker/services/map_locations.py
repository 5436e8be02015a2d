"""
Lokacije za zemljevid / Map locations.
Cikli s koordinatami, označeni s statusom markerja in združeni po bližini.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mat_tracker.models.cycle import Cycle, CycleStatus
from mat_tracker.models.user import User
from mat_tracker.services.cycle_lifecycle import days_on_test
from mat_tracker.utils.auth import is_scoped_to_self
from mat_tracker.utils.geo import GeoPoint, LocationGroup, NearestResult, find_nearest_point, group_by_proximity
from mat_tracker.utils.timeutils import utcnow

MAP_STATUSES = [CycleStatus.ON_TEST, CycleStatus.WAITING_DRIVER]


@dataclass
class MapLocation:
    cycle_id: str
    lat: float
    lng: float
    marker_status: str
    qr_code: str | None
    company_id: str | None
    company_name: str | None
    salesperson_id: str
    salesperson_name: str
    days_on_test: int
    contract_signed: bool


def marker_status(cycle: Cycle) -> str:
    """Podpisana pogodba ima prednost pred statusom / A signed contract wins over the cycle status."""
    if cycle.contract_signed:
        return "contract_signed"
    if cycle.status == CycleStatus.WAITING_DRIVER:
        return "waiting_driver"
    if cycle.status in (CycleStatus.DIRTY, CycleStatus.COMPLETED):
        return "completed"
    return "on_test"


class MapService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def locations(
        self,
        actor: User,
        salesperson_id: str | None = None,
        statuses: list[CycleStatus] | None = None,
        include_dirty: bool = False,
        now: datetime | None = None,
    ) -> list[MapLocation]:
        now = now or utcnow()
        wanted = list(statuses or MAP_STATUSES)
        if include_dirty and CycleStatus.DIRTY not in wanted:
            wanted.append(CycleStatus.DIRTY)

        query = (
            select(Cycle)
            .options(selectinload(Cycle.qr_code), selectinload(Cycle.company), selectinload(Cycle.salesperson))
            .where(
                Cycle.status.in_(wanted),
                Cycle.location_lat.is_not(None),
                Cycle.location_lng.is_not(None),
            )
        )
        if is_scoped_to_self(actor.role):
            salesperson_id = actor.id
        if salesperson_id:
            query = query.where(Cycle.salesperson_id == salesperson_id)

        result = await self.db.execute(query)
        return [
            MapLocation(
                cycle_id=cycle.id,
                lat=cycle.location_lat,
                lng=cycle.location_lng,
                marker_status=marker_status(cycle),
                qr_code=cycle.qr_code.code if cycle.qr_code else None,
                company_id=cycle.company_id,
                company_name=cycle.company.label if cycle.company else None,
                salesperson_id=cycle.salesperson_id,
                salesperson_name=cycle.salesperson.full_name if cycle.salesperson else "",
                days_on_test=days_on_test(cycle.test_start_date, now),
                contract_signed=cycle.contract_signed,
            )
            for cycle in result.scalars().all()
        ]

    @staticmethod
    def group(locations: list[MapLocation], threshold: float | None = None) -> list[LocationGroup]:
        points = [GeoPoint(key=loc.cycle_id, lat=loc.lat, lng=loc.lng, payload=loc) for loc in locations]
        return group_by_proximity(points, threshold)

    @staticmethod
    def nearest(lat: float, lng: float, locations: list[MapLocation], max_km: float | None = None) -> NearestResult:
        points = [GeoPoint(key=loc.cycle_id, lat=loc.lat, lng=loc.lng, payload=loc) for loc in locations]
        return find_nearest_point(lat, lng, points, max_km)
