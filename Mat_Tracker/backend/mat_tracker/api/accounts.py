"""Poti računov / Account administration API routes."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import get_bearer_token, get_current_user, require_permission
from mat_tracker.config import settings
from mat_tracker.database import get_db
from mat_tracker.models.user import User, UserRole
from mat_tracker.rate_limit import limiter
from mat_tracker.schemas.account import (
    AccountCreate,
    AccountCreated,
    AccountRead,
    ActiveUpdate,
    PasswordReset,
    PasswordResetResult,
    UserMe,
)
from mat_tracker.services.admin_client import AccountService, AdminServiceClient
from mat_tracker.utils.auth import ROLE_PERMISSIONS

router = APIRouter()


def get_admin_client(token: str = Depends(get_bearer_token)) -> AdminServiceClient:
    return AdminServiceClient(token)


@router.get("/me", response_model=UserMe)
async def me(user: User = Depends(get_current_user)):
    """Profil in pravice / Current profile with flat permissions."""
    permissions = sorted(f"{resource}:{action}" for resource, action in ROLE_PERMISSIONS[user.role])
    return UserMe.model_validate({**AccountRead.model_validate(user).model_dump(), "permissions": permissions})


@router.get("/", response_model=list[AccountRead])
async def list_accounts(
    role: UserRole | None = None,
    db: AsyncSession = Depends(get_db),
    client: AdminServiceClient = Depends(get_admin_client),
    user: User = Depends(require_permission("accounts", "read")),
):
    return await AccountService(db, client).list_accounts(role)


@router.post("/", response_model=AccountCreated, status_code=201)
@limiter.limit(settings.RATE_LIMIT_ACCOUNTS)
async def create_account(
    request: Request,
    data: AccountCreate,
    db: AsyncSession = Depends(get_db),
    client: AdminServiceClient = Depends(get_admin_client),
    user: User = Depends(require_permission("accounts", "create")),
):
    """Nov račun prek privilegirane storitve / New account via the privileged service."""
    account, password = await AccountService(db, client).create_account(user, data.model_dump())
    return AccountCreated(account=AccountRead.model_validate(account), password=password)


@router.post("/{user_id}/password", response_model=PasswordResetResult)
@limiter.limit(settings.RATE_LIMIT_ACCOUNTS)
async def reset_password(
    request: Request,
    user_id: str,
    data: PasswordReset,
    db: AsyncSession = Depends(get_db),
    client: AdminServiceClient = Depends(get_admin_client),
    user: User = Depends(require_permission("accounts", "update")),
):
    password = await AccountService(db, client).reset_password(user, user_id, data.password)
    return PasswordResetResult(password=password)


@router.put("/{user_id}/active", response_model=AccountRead)
async def set_active(
    user_id: str,
    data: ActiveUpdate,
    db: AsyncSession = Depends(get_db),
    client: AdminServiceClient = Depends(get_admin_client),
    user: User = Depends(require_permission("accounts", "update")),
):
    return await AccountService(db, client).set_active(user, user_id, data.is_active)


@router.delete("/{user_id}", status_code=204)
@limiter.limit(settings.RATE_LIMIT_ACCOUNTS)
async def delete_account(
    request: Request,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    client: AdminServiceClient = Depends(get_admin_client),
    user: User = Depends(require_permission("accounts", "delete")),
):
    await AccountService(db, client).delete_account(user, user_id)
