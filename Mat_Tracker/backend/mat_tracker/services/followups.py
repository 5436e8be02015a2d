"""
Opomniki in sledenje pogodbam / Reminders and contract follow-ups.
Brez ozadnjega procesa; zapadlost se izračuna ob poizvedbi.
No background job; due-ness is computed at query time.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mat_tracker.config import settings
from mat_tracker.models.company import Company, PipelineStatus
from mat_tracker.models.reminder import Reminder, ReminderType
from mat_tracker.models.user import User, UserRole
from mat_tracker.services.companies import CompanyService
from mat_tracker.services.errors import (
    CompoundWriteError,
    DomainError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    flush_changes,
)
from mat_tracker.utils.timeutils import next_local_morning, to_naive_utc, utcnow

log = logging.getLogger(__name__)

CONTRACT_FOLLOWUP_NOTE = "Ali si dobil podpisano pogodbo? - {company}"
OFFER_FOLLOWUP_NOTE = "Ali si dobil odgovor na ponudbo? - {company}"


def is_due(reminder: Reminder, now: datetime) -> bool:
    return not reminder.is_completed and reminder.reminder_at <= now


class FollowupService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Opomniki / Reminders ---

    async def get_reminder(self, reminder_id: str, actor: User) -> Reminder:
        reminder = await self.db.get(Reminder, reminder_id)
        if not reminder:
            raise NotFoundError("Reminder not found")
        if reminder.user_id != actor.id and actor.role != UserRole.ADMIN:
            raise PermissionDeniedError("Reminder belongs to another user")
        return reminder

    async def create_reminder(
        self,
        actor: User,
        reminder_at: datetime,
        note: str | None = None,
        company_id: str | None = None,
        reminder_type: ReminderType = ReminderType.GENERAL,
    ) -> Reminder:
        if company_id and not await self.db.get(Company, company_id):
            raise NotFoundError("Company not found")
        reminder = Reminder(
            user_id=actor.id,
            company_id=company_id,
            reminder_at=to_naive_utc(reminder_at),
            note=note,
            reminder_type=reminder_type,
            is_completed=False,
        )
        self.db.add(reminder)
        await flush_changes(self.db, "reminder")
        await self.db.refresh(reminder, ["company"])
        return reminder

    async def list_open(self, actor: User) -> list[Reminder]:
        result = await self.db.execute(
            select(Reminder)
            .where(Reminder.user_id == actor.id, Reminder.is_completed.is_(False))
            .order_by(Reminder.reminder_at)
        )
        return list(result.scalars().all())

    async def due_reminders(self, actor: User, now: datetime | None = None) -> list[Reminder]:
        """Zapadli: reminder_at <= now in ne opravljen / Due: reminder_at <= now and not completed."""
        now = now or utcnow()
        result = await self.db.execute(
            select(Reminder)
            .where(
                Reminder.user_id == actor.id,
                Reminder.is_completed.is_(False),
                Reminder.reminder_at <= now,
            )
            .order_by(Reminder.reminder_at)
        )
        return list(result.scalars().all())

    async def complete_reminder(self, reminder_id: str, actor: User) -> Reminder:
        reminder = await self.get_reminder(reminder_id, actor)
        reminder.is_completed = True
        reminder.updated_at = utcnow()
        await flush_changes(self.db, "reminder")
        return reminder

    async def postpone(self, reminder_id: str, actor: User, until: datetime) -> Reminder:
        """Prestavi na poljuben čas / Postpone to an arbitrary time."""
        reminder = await self.get_reminder(reminder_id, actor)
        if reminder.is_completed:
            raise ValidationError("A completed reminder cannot be postponed")
        reminder.reminder_at = to_naive_utc(until)
        reminder.updated_at = utcnow()
        await flush_changes(self.db, "reminder")
        return reminder

    async def postpone_followup(self, reminder_id: str, actor: User, now: datetime | None = None) -> Reminder:
        """Prestavi na jutri ob 09:00 / Push to tomorrow at 09:00 local time."""
        return await self.postpone(reminder_id, actor, next_local_morning(now or utcnow()))

    async def delete_reminder(self, reminder_id: str, actor: User) -> None:
        reminder = await self.get_reminder(reminder_id, actor)
        await self.db.delete(reminder)
        await flush_changes(self.db, "reminder")

    # --- Pogodbe / Contracts ---

    async def contract_pending_followups(
        self, actor: User, threshold_days: int | None = None, now: datetime | None = None
    ) -> list[Company]:
        """Poslane pogodbe brez odgovora / Contracts sent at least N days ago and not yet signed."""
        threshold_days = settings.CONTRACT_FOLLOWUP_DAYS if threshold_days is None else threshold_days
        cutoff = (now or utcnow()) - timedelta(days=threshold_days)
        result = await self.db.execute(
            select(Company)
            .options(selectinload(Company.contacts))
            .where(
                Company.created_by == actor.id,
                Company.pipeline_status == PipelineStatus.CONTRACT_SENT,
                Company.contract_sent_at <= cutoff,
            )
            .order_by(Company.contract_sent_at)
        )
        return list(result.scalars().all())

    async def mark_contract_called(self, company_id: str, actor: User) -> tuple[Company, Reminder]:
        """Poklical glede pogodbe / Called the customer about the contract.

        Žig na podjetju in opomnik za jutri 09:00 sta ena operacija v transakciji zahteve;
        če opomnik ne uspe, se zavrže tudi žig.
        Company stamp plus tomorrow-09:00 reminder, as one operation in the request transaction;
        a failed reminder discards the stamp too.
        """
        company = await CompanyService(self.db).get(company_id)
        now = utcnow()
        company.contract_called_at = now
        company.updated_at = now
        await flush_changes(self.db, "company")

        try:
            reminder = await self.create_reminder(
                actor,
                reminder_at=next_local_morning(now),
                note=CONTRACT_FOLLOWUP_NOTE.format(company=company.label),
                company_id=company.id,
                reminder_type=ReminderType.CONTRACT_FOLLOWUP,
            )
        except DomainError as exc:
            log.warning("Follow-up reminder for company %s failed, contract call not saved", company.id)
            raise CompoundWriteError(
                f"Contract call for {company.label} was not saved: the follow-up reminder failed: {exc.message}",
                completed_steps=[],
                failed_step="reminder",
                rolled_back=True,
            ) from exc

        log.info("Contract call recorded for company %s, follow-up at %s", company.id, reminder.reminder_at)
        return company, reminder

    async def mark_contract_received(
        self, company_id: str, actor: User, reminder_id: str | None = None
    ) -> Company:
        """Pogodba prejeta / Signed contract received."""
        company = await CompanyService(self.db).get(company_id)
        company.pipeline_status = PipelineStatus.CONTRACT_SIGNED
        company.contract_called_at = None
        company.updated_at = utcnow()
        if reminder_id:
            reminder = await self.get_reminder(reminder_id, actor)
            reminder.is_completed = True
            reminder.updated_at = utcnow()
        await flush_changes(self.db, "company")
        return company

    # --- Ponudbe / Offers ---

    async def record_offer_sent(self, company_id: str, actor: User) -> tuple[Company, Reminder]:
        """Ponudba poslana; opomnik čez 2 dni ob 09:00 / Offer sent; reminder in 2 days at 09:00."""
        company = await CompanyService(self.db).set_pipeline_status(company_id, PipelineStatus.OFFER_SENT)
        reminder = await self.create_reminder(
            actor,
            reminder_at=next_local_morning(company.offer_sent_at, days=settings.OFFER_FOLLOWUP_DAYS),
            note=OFFER_FOLLOWUP_NOTE.format(company=company.label),
            company_id=company.id,
            reminder_type=ReminderType.OFFER_FOLLOWUP_1,
        )
        return company, reminder
