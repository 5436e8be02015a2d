"""Poti CRM / CRM API routes (companies, contacts, pipeline)."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.user import User
from mat_tracker.schemas.company import (
    CompanyCreate,
    CompanyDetail,
    CompanyRead,
    CompanyUpdate,
    ContactCreate,
    ContactRead,
    ContactUpdate,
    FollowupResult,
    PipelineUpdate,
)
from mat_tracker.schemas.reminder import ContractReceivedRequest
from mat_tracker.services.companies import CompanyService
from mat_tracker.services.followups import FollowupService
from mat_tracker.utils.auth import is_scoped_to_self

router = APIRouter()


@router.get("/", response_model=list[CompanyRead])
async def search_companies(
    q: str | None = None,
    limit: int = 50,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "read")),
):
    """Iskanje po imenu ali davčni / Search by name or tax number."""
    created_by = user.id if is_scoped_to_self(user.role) else None
    return await CompanyService(db).search(q, created_by=created_by, limit=min(limit, 200))


@router.get("/{company_id}", response_model=CompanyDetail)
async def get_company(
    company_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "read")),
):
    return await CompanyService(db).get(company_id)


@router.get("/{company_id}/children", response_model=list[CompanyRead])
async def company_children(
    company_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "read")),
):
    return await CompanyService(db).children(company_id)


@router.post("/", response_model=CompanyDetail, status_code=201)
async def create_company(
    data: CompanyCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "create")),
):
    contacts = [c.model_dump() for c in data.contacts]
    return await CompanyService(db).create(data.model_dump(exclude={"contacts"}), user, contacts=contacts)


@router.put("/{company_id}", response_model=CompanyRead)
async def update_company(
    company_id: str,
    data: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "update")),
):
    return await CompanyService(db).update(company_id, data.model_dump(exclude_unset=True))


@router.put("/{company_id}/pipeline", response_model=CompanyRead)
async def set_pipeline(
    company_id: str,
    data: PipelineUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "update")),
):
    return await CompanyService(db).set_pipeline_status(company_id, data.pipeline_status)


@router.post("/{company_id}/contacts", response_model=ContactRead, status_code=201)
async def add_contact(
    company_id: str,
    data: ContactCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "update")),
):
    return await CompanyService(db).add_contact(company_id, data.model_dump())


@router.put("/contacts/{contact_id}", response_model=ContactRead)
async def update_contact(
    contact_id: str,
    data: ContactUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "update")),
):
    return await CompanyService(db).update_contact(contact_id, data.model_dump(exclude_unset=True))


# --- Sledenje pogodbam in ponudbam / Contract and offer follow-ups ---

@router.post("/{company_id}/contract-called", response_model=FollowupResult)
async def contract_called(
    company_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "create")),
):
    """Klic glede pogodbe + opomnik za jutri 09:00 / Contract call plus reminder tomorrow 09:00."""
    company, reminder = await FollowupService(db).mark_contract_called(company_id, user)
    return FollowupResult.model_validate({"company": company, "reminder": reminder}, from_attributes=True)


@router.post("/{company_id}/contract-received", response_model=CompanyRead)
async def contract_received(
    company_id: str,
    data: ContractReceivedRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("companies", "update")),
):
    return await FollowupService(db).mark_contract_received(company_id, user, reminder_id=data.reminder_id)


@router.post("/{company_id}/offer-sent", response_model=FollowupResult)
async def offer_sent(
    company_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("reminders", "create")),
):
    company, reminder = await FollowupService(db).record_offer_sent(company_id, user)
    return FollowupResult.model_validate({"company": company, "reminder": reminder}, from_attributes=True)
