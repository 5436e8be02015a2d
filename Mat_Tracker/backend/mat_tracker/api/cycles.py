"""Poti ciklov / Cycle API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.cycle import Cycle, CycleStatus
from mat_tracker.models.user import User
from mat_tracker.schemas.cycle import (
    ContractSignRequest,
    CycleCreate,
    CycleHistoryRead,
    CycleRead,
    LocationUpdate,
    PutOnTestRequest,
    StartDateUpdate,
)
from mat_tracker.services.cycle_lifecycle import (
    CycleService,
    days_on_test,
    days_remaining,
    is_expiring,
    neglect_level,
)
from mat_tracker.services.geolocation import GeoFix, fixed_provider
from mat_tracker.utils.timeutils import utcnow

router = APIRouter()


def _read(cycle: Cycle) -> CycleRead:
    """Dodaj izpeljana polja / Attach fields derived from the current time."""
    out = CycleRead.model_validate(cycle)
    if cycle.status == CycleStatus.ON_TEST and cycle.test_start_date is not None:
        now = utcnow()
        out.is_expiring = is_expiring(cycle.test_start_date, now, cycle.extended_count)
        out.days_on_test = days_on_test(cycle.test_start_date, now)
        out.days_remaining = days_remaining(cycle.test_start_date, now, cycle.extended_count)
        out.neglect_level = neglect_level(cycle.test_start_date, now)
    return out


@router.get("/", response_model=list[CycleRead])
async def list_cycles(
    status: CycleStatus | None = None,
    salesperson_id: str | None = None,
    include_completed: bool = False,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "read")),
):
    """Odprti cikli (privzeto) / Open cycles by default."""
    cycles = await CycleService(db).list_cycles(
        user, status=status, salesperson_id=salesperson_id, open_only=not include_completed
    )
    return [_read(c) for c in cycles]


@router.get("/history/recent", response_model=list[CycleHistoryRead])
async def recent_history(
    limit: int = 20,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "read")),
):
    return await CycleService(db).recent_history(user, limit=min(limit, 200))


@router.get("/{cycle_id}", response_model=CycleRead)
async def get_cycle(
    cycle_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "read")),
):
    return _read(await CycleService(db).get(cycle_id, user))


@router.get("/{cycle_id}/history", response_model=list[CycleHistoryRead])
async def cycle_history(
    cycle_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "read")),
):
    return await CycleService(db).history(cycle_id, user)


@router.post("/", response_model=CycleRead, status_code=201)
async def create_cycle(
    data: CycleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "create")),
):
    """Aktiviraj kodo / Activate a code as a clean cycle."""
    cycle = await CycleService(db).create_cycle(data.qr_code_id, data.mat_type_id, user, notes=data.notes)
    return _read(cycle)


@router.post("/{cycle_id}/put-on-test", response_model=CycleRead)
async def put_on_test(
    cycle_id: str,
    data: PutOnTestRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "update")),
):
    provider = None
    if data.location is not None:
        provider = fixed_provider(GeoFix(**data.location.model_dump()))

    new_company = None
    contacts = []
    if data.new_company is not None:
        new_company = data.new_company.model_dump(exclude={"contacts"})
        contacts = [c.model_dump() for c in data.new_company.contacts]

    new_contact = data.new_contact.model_dump() if data.new_contact else (contacts[0] if contacts else None)
    cycle = await CycleService(db).put_on_test(
        cycle_id,
        user,
        company_id=data.company_id,
        new_company=new_company,
        contact_id=data.contact_id,
        new_contact=new_contact,
        location_provider=provider,
        test_start_date=data.test_start_date,
    )
    return _read(cycle)


@router.post("/{cycle_id}/dirty", response_model=CycleRead)
async def mark_dirty(
    cycle_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "update")),
):
    return _read(await CycleService(db).mark_dirty(cycle_id, user))


@router.post("/{cycle_id}/request-pickup", response_model=CycleRead)
async def request_pickup(
    cycle_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "update")),
):
    return _read(await CycleService(db).request_pickup(cycle_id, user))


@router.post("/{cycle_id}/contract", response_model=CycleRead)
async def sign_contract(
    cycle_id: str,
    data: ContractSignRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "update")),
):
    cycle = await CycleService(db).mark_contract_signed(
        cycle_id, user, data.frequency, request_pickup=data.request_pickup
    )
    return _read(cycle)


@router.post("/{cycle_id}/extend", response_model=CycleRead)
async def extend_test(
    cycle_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "update")),
):
    return _read(await CycleService(db).extend_test(cycle_id, user))


@router.put("/{cycle_id}/location", response_model=CycleRead)
async def update_location(
    cycle_id: str,
    data: LocationUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "update")),
):
    return _read(await CycleService(db).update_location(cycle_id, user, data.lat, data.lng))


@router.put("/{cycle_id}/test-start", response_model=CycleRead)
async def update_test_start(
    cycle_id: str,
    data: StartDateUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("cycles", "update")),
):
    return _read(await CycleService(db).update_test_start_date(cycle_id, user, data.test_start_date))
