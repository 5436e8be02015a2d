"""Poti prevzemov / Driver pickup API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.driver_pickup import PickupStatus
from mat_tracker.models.user import User
from mat_tracker.schemas.pickup import ItemNotesUpdate, PickupCreate, PickupItemRead, PickupRead, PickupUpdate
from mat_tracker.services.pickup_batcher import PickupBatchService

router = APIRouter()


@router.get("/", response_model=list[PickupRead])
async def list_pickups(
    status: list[PickupStatus] | None = Query(None),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "read")),
):
    return await PickupBatchService(db).list_batches(status)


@router.get("/{pickup_id}", response_model=PickupRead)
async def get_pickup(
    pickup_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "read")),
):
    return await PickupBatchService(db).get(pickup_id)


@router.post("/", response_model=PickupRead, status_code=201)
async def create_pickup(
    data: PickupCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "create")),
):
    """Nov paket; umazani cikli gredo v waiting_driver / New batch, dirty cycles move to waiting_driver."""
    return await PickupBatchService(db).create_batch(
        data.cycle_ids,
        user,
        scheduled_date=data.scheduled_date,
        notes=data.notes,
        assigned_driver=data.assigned_driver,
    )


@router.put("/{pickup_id}", response_model=PickupRead)
async def update_pickup(
    pickup_id: str,
    data: PickupUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "update")),
):
    return await PickupBatchService(db).update_batch(pickup_id, data.model_dump(exclude_unset=True))


@router.post("/{pickup_id}/start", response_model=PickupRead)
async def start_pickup(
    pickup_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "update")),
):
    return await PickupBatchService(db).start_batch(pickup_id)


@router.post("/{pickup_id}/items/{item_id}/toggle", response_model=PickupItemRead)
async def toggle_item(
    pickup_id: str,
    item_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "update")),
):
    return await PickupBatchService(db).toggle_item(pickup_id, item_id)


@router.put("/{pickup_id}/items/{item_id}/notes", response_model=PickupItemRead)
async def set_item_notes(
    pickup_id: str,
    item_id: str,
    data: ItemNotesUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "update")),
):
    return await PickupBatchService(db).set_item_notes(pickup_id, item_id, data.notes)


@router.post("/{pickup_id}/complete", response_model=PickupRead)
async def complete_pickup(
    pickup_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "update")),
):
    """Zaključi paket; cikli completed, kode spet proste / Complete: cycles completed, codes freed."""
    return await PickupBatchService(db).complete_batch(pickup_id, user)


@router.delete("/{pickup_id}", status_code=204)
async def delete_pickup(
    pickup_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("pickups", "delete")),
):
    await PickupBatchService(db).delete_batch(pickup_id, user)
