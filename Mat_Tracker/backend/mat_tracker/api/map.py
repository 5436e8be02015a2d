"""Poti zemljevida / Map API routes."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.cycle import CycleStatus
from mat_tracker.models.user import User
from mat_tracker.schemas.dashboard import LocationGroupRead, MapLocationRead, NearestRead
from mat_tracker.services.map_locations import MapService

router = APIRouter()


@router.get("/locations", response_model=list[MapLocationRead])
async def map_locations(
    salesperson_id: str | None = None,
    status: list[CycleStatus] | None = Query(None),
    include_dirty: bool = False,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "read")),
):
    locations = await MapService(db).locations(
        user, salesperson_id=salesperson_id, statuses=status, include_dirty=include_dirty
    )
    return [asdict(loc) for loc in locations]


@router.get("/groups", response_model=list[LocationGroupRead])
async def map_groups(
    salesperson_id: str | None = None,
    include_dirty: bool = False,
    threshold: float | None = Query(None, gt=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "read")),
):
    """Lokacije, združene po bližini / Locations grouped by proximity."""
    service = MapService(db)
    locations = await service.locations(user, salesperson_id=salesperson_id, include_dirty=include_dirty)
    return [
        LocationGroupRead(
            lat=group.lat,
            lng=group.lng,
            count=len(group.points),
            locations=[asdict(p.payload) for p in group.points],
        )
        for group in service.group(locations, threshold)
    ]


@router.get("/nearest", response_model=NearestRead)
async def nearest_location(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "read")),
):
    service = MapService(db)
    result = service.nearest(lat, lng, await service.locations(user))
    if result.point is None:
        return NearestRead(location=None, distance_km=None, is_within_range=False)
    return NearestRead(
        location=asdict(result.point.payload),
        distance_km=result.distance_km,
        is_within_range=result.is_within_range,
    )
