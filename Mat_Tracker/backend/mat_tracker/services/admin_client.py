"""
Upravljanje računov prek privilegirane storitve / Account administration via the privileged service.

Ta storitev sama ne ustvarja identitet; pripravi zahtevo in razloži odgovor.
This service does not create identities itself; it builds the request and interprets the response.
"""

import asyncio
import logging
import secrets

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.config import settings
from mat_tracker.models.user import User, UserRole
from mat_tracker.services.audit import log_audit
from mat_tracker.services.code_registry import PREFIX_PATTERN
from mat_tracker.services.errors import (
    ConstraintViolationError,
    NotFoundError,
    PermissionDeniedError,
    TransientError,
    ValidationError,
    flush_changes,
)

log = logging.getLogger(__name__)


def generate_password(length: int = 12) -> str:
    return secrets.token_urlsafe(length)[:length]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("error") or body.get("message") or f"HTTP {response.status_code}"
    return str(body)


class AdminServiceClient:
    """HTTP odjemalec za create-user / delete-user / update-user-password.

    Transportne napake in 5xx se ponovijo z eksponentnim zamikom; 401/403 nikoli.
    """

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        max_retries: int | None = None,
        backoff_seconds: float = 0.5,
    ):
        self.token = token
        self.base_url = (base_url or settings.ADMIN_SERVICE_URL).rstrip("/")
        self.transport = transport
        self.max_retries = settings.ADMIN_SERVICE_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_seconds = backoff_seconds

    async def _post(self, path: str, payload: dict) -> dict:
        headers = {"Authorization": f"Bearer {self.token}"}
        last_error = "no attempt made"

        async with httpx.AsyncClient(
            base_url=self.base_url,
            transport=self.transport,
            timeout=settings.ADMIN_SERVICE_TIMEOUT_SECONDS,
        ) as client:
            for attempt in range(self.max_retries + 1):
                if attempt:
                    delay = self.backoff_seconds * 2 ** (attempt - 1)
                    log.warning("Retrying %s in %.1fs (attempt %d): %s", path, delay, attempt + 1, last_error)
                    await asyncio.sleep(delay)
                try:
                    response = await client.post(f"/{path}", json=payload, headers=headers)
                except httpx.TransportError as exc:
                    last_error = str(exc) or exc.__class__.__name__
                    continue

                if response.status_code in (401, 403):
                    raise PermissionDeniedError(_error_message(response))
                if response.status_code >= 500:
                    last_error = _error_message(response)
                    continue
                if response.status_code == 404:
                    raise NotFoundError(_error_message(response))
                if response.status_code == 409:
                    raise ConstraintViolationError(_error_message(response))
                if response.status_code >= 400:
                    raise ValidationError(_error_message(response))

                log.info("Admin service %s succeeded", path)
                return response.json() if response.content else {}

        raise TransientError(f"Admin service unavailable: {last_error}", attempts=self.max_retries + 1)

    async def create_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        code_prefix: str | None = None,
    ) -> dict:
        payload = {
            "email": email,
            "password": password,
            "full_name": f"{first_name} {last_name}".strip(),
            "role": UserRole(role).value.upper(),
            "qr_prefix": code_prefix.upper() if code_prefix else None,
        }
        return await self._post("create-user", payload)

    async def delete_user(self, user_id: str) -> dict:
        return await self._post("delete-user", {"user_id": user_id})

    async def update_user_password(self, user_id: str, password: str) -> dict:
        return await self._post("update-user-password", {"user_id": user_id, "password": password})


class AccountService:
    """Računi s profilom in revizijsko sledjo / Accounts with local profile and audit trail."""

    def __init__(self, db: AsyncSession, client: AdminServiceClient):
        self.db = db
        self.client = client

    async def _profile(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def list_accounts(self, role: UserRole | None = None) -> list[User]:
        query = select(User).order_by(User.last_name, User.first_name)
        if role is not None:
            query = query.where(User.role == role)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def create_account(self, actor: User, data: dict) -> tuple[User, str]:
        """Vrne profil in začetno geslo / Returns the profile and its initial password."""
        role = UserRole(data.get("role") or UserRole.PRODAJALEC)
        prefix = (data.get("code_prefix") or "").upper() or None
        if prefix and not PREFIX_PATTERN.match(prefix):
            raise ValidationError(f"Invalid code prefix: {prefix!r}")
        if role == UserRole.PRODAJALEC and not prefix:
            raise ValidationError("A salesperson needs a code prefix")
        existing = await self.db.scalar(select(User.id).where(User.email == data["email"]))
        if existing:
            raise ConstraintViolationError(f"User {data['email']} already exists")

        password = data.get("password") or generate_password()
        response = await self.client.create_user(
            email=data["email"],
            password=password,
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            role=role,
            code_prefix=prefix,
        )

        user = User(
            email=data["email"],
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            role=role,
            code_prefix=prefix,
            phone=data.get("phone"),
        )
        remote_id = (response.get("user") or {}).get("id") or response.get("id")
        if remote_id:
            user.id = remote_id
        self.db.add(user)
        await flush_changes(self.db, "user")

        log_audit(self.db, "user", user.id, "CREATE_USER", actor, {"email": user.email, "role": role.value})
        log.info("Account %s created (%s)", user.email, role.value)
        return user, password

    async def delete_account(self, actor: User, user_id: str) -> None:
        """Račun se izbriše zunaj, profil se deaktivira / Remote account deleted, local profile deactivated."""
        if user_id == actor.id:
            raise ValidationError("You cannot delete your own account")
        user = await self._profile(user_id)
        await self.client.delete_user(user_id)
        user.is_active = False
        await flush_changes(self.db, "user")
        log_audit(self.db, "user", user.id, "DELETE_USER", actor, {"email": user.email})

    async def reset_password(self, actor: User, user_id: str, password: str | None = None) -> str:
        user = await self._profile(user_id)
        password = password or generate_password()
        await self.client.update_user_password(user_id, password)
        log_audit(self.db, "user", user.id, "RESET_PASSWORD", actor)
        return password

    async def set_active(self, actor: User, user_id: str, active: bool) -> User:
        user = await self._profile(user_id)
        user.is_active = active
        await flush_changes(self.db, "user")
        log_audit(self.db, "user", user.id, "ACTIVATE" if active else "DEACTIVATE", actor)
        return user

