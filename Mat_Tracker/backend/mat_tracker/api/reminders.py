"""Poti opomnikov / Reminder API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.user import User
from mat_tracker.schemas.company import CompanyDetail
from mat_tracker.schemas.reminder import PostponeRequest, ReminderCreate, ReminderRead
from mat_tracker.services.followups import FollowupService

router = APIRouter()


@router.get("/", response_model=list[ReminderRead])
async def list_open(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "read")),
):
    """Odprti opomniki / Open reminders, soonest first."""
    return await FollowupService(db).list_open(user)


@router.get("/due", response_model=list[ReminderRead])
async def due_reminders(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "read")),
):
    return await FollowupService(db).due_reminders(user)


@router.get("/contract-followups", response_model=list[CompanyDetail])
async def contract_followups(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "read")),
):
    """Poslane pogodbe brez odziva / Contracts sent without a response."""
    return await FollowupService(db).contract_pending_followups(user)


@router.post("/", response_model=ReminderRead, status_code=201)
async def create_reminder(
    data: ReminderCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "create")),
):
    return await FollowupService(db).create_reminder(
        user,
        reminder_at=data.reminder_at,
        note=data.note,
        company_id=data.company_id,
        reminder_type=data.reminder_type,
    )


@router.post("/{reminder_id}/complete", response_model=ReminderRead)
async def complete_reminder(
    reminder_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "update")),
):
    return await FollowupService(db).complete_reminder(reminder_id, user)


@router.post("/{reminder_id}/postpone", response_model=ReminderRead)
async def postpone_reminder(
    reminder_id: str,
    data: PostponeRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "update")),
):
    service = FollowupService(db)
    if data.until is None:
        return await service.postpone_followup(reminder_id, user)
    return await service.postpone(reminder_id, user, data.until)


@router.delete("/{reminder_id}", status_code=204)
async def delete_reminder(
    reminder_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "delete")),
):
    await FollowupService(db).delete_reminder(reminder_id, user)
