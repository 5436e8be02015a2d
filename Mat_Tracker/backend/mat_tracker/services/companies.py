"""
Podjetja in kontakti (CRM) / Companies and contacts (CRM).
"""

import logging

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from mat_tracker.models.company import Company, Contact, PipelineStatus
from mat_tracker.models.user import User
from mat_tracker.services.errors import (
    ConstraintViolationError,
    NotFoundError,
    ValidationError,
    flush_changes,
)
from mat_tracker.utils.timeutils import utcnow

log = logging.getLogger(__name__)

COMPANY_FIELDS = (
    "name",
    "display_name",
    "tax_number",
    "address_street",
    "address_postal",
    "address_city",
    "delivery_address",
    "billing_address",
    "parent_company_id",
    "notes",
)
CONTACT_FIELDS = ("first_name", "last_name", "email", "phone", "role", "is_primary")


class CompanyService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, company_id: str) -> Company:
        result = await self.db.execute(
            select(Company).where(Company.id == company_id).options(selectinload(Company.contacts))
        )
        company = result.scalar_one_or_none()
        if not company:
            raise NotFoundError("Company not found")
        return company

    async def _check_tax_number(self, tax_number: str | None, exclude_id: str | None = None) -> None:
        if not tax_number:
            return
        query = select(Company.id).where(Company.tax_number == tax_number)
        if exclude_id:
            query = query.where(Company.id != exclude_id)
        if await self.db.scalar(query):
            raise ConstraintViolationError(f"A company with tax number {tax_number} already exists")

    async def create(self, data: dict, actor: User, contacts: list[dict] | None = None) -> Company:
        """Ustvari podjetje (in kontakte) / Create a company with optional contacts."""
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Company name is required")
        await self._check_tax_number(data.get("tax_number"))
        if data.get("parent_company_id") and not await self.db.get(Company, data["parent_company_id"]):
            raise NotFoundError("Parent company not found")

        company = Company(**{k: data.get(k) for k in COMPANY_FIELDS if k in data})
        company.name = name
        company.created_by = actor.id
        company.contacts = [Contact(**{k: c.get(k) for k in CONTACT_FIELDS if k in c}) for c in contacts or []]
        self.db.add(company)
        await flush_changes(self.db, "company")
        log.info("Company %s created by %s", company.id, actor.email)
        return company

    async def update(self, company_id: str, data: dict) -> Company:
        company = await self.get(company_id)
        if "tax_number" in data:
            await self._check_tax_number(data["tax_number"], exclude_id=company_id)
        if data.get("parent_company_id") == company_id:
            raise ValidationError("A company cannot be its own parent")
        for key in COMPANY_FIELDS:
            if key in data:
                setattr(company, key, data[key])
        company.updated_at = utcnow()
        await flush_changes(self.db, "company")
        return company

    async def search(self, query: str | None = None, created_by: str | None = None, limit: int = 50) -> list[Company]:
        stmt = select(Company).options(selectinload(Company.contacts)).order_by(Company.name).limit(limit)
        if query:
            pattern = f"%{query.strip()}%"
            stmt = stmt.where(or_(
                Company.name.ilike(pattern),
                Company.display_name.ilike(pattern),
                Company.tax_number.ilike(pattern),
            ))
        if created_by:
            stmt = stmt.where(Company.created_by == created_by)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def children(self, company_id: str) -> list[Company]:
        result = await self.db.execute(
            select(Company).where(Company.parent_company_id == company_id).order_by(Company.name)
        )
        return list(result.scalars().all())

    async def set_pipeline_status(self, company_id: str, status: PipelineStatus) -> Company:
        """Faza lijaka; žigosa datume ponudbe in pogodbe / Stage change, stamping offer/contract dates."""
        company = await self.get(company_id)
        now = utcnow()
        company.pipeline_status = status
        if status == PipelineStatus.OFFER_SENT:
            company.offer_sent_at = now
        elif status == PipelineStatus.CONTRACT_SENT:
            company.contract_sent_at = now
            company.contract_called_at = None
        company.updated_at = now
        await flush_changes(self.db, "company")
        return company

    # --- Kontakti / Contacts ---

    async def add_contact(self, company_id: str, data: dict) -> Contact:
        await self.get(company_id)
        contact = Contact(company_id=company_id, **{k: data.get(k) for k in CONTACT_FIELDS if k in data})
        self.db.add(contact)
        await flush_changes(self.db, "contact")
        return contact

    async def get_contact(self, contact_id: str, company_id: str | None = None) -> Contact:
        contact = await self.db.get(Contact, contact_id)
        if not contact or (company_id and contact.company_id != company_id):
            raise NotFoundError("Contact not found")
        return contact

    async def update_contact(self, contact_id: str, data: dict) -> Contact:
        contact = await self.get_contact(contact_id)
        for key in CONTACT_FIELDS:
            if key in data:
                setattr(contact, key, data[key])
        await flush_changes(self.db, "contact")
        return contact
