"""
Sheme računov in revizije / Account and audit schemas.
Gesla se ne shranjujejo; začetno geslo se vrne samo ob ustvarjanju.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from mat_tracker.models.user import UserRole


class AccountCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    role: UserRole = UserRole.PRODAJALEC
    code_prefix: str | None = Field(default=None, max_length=10)
    phone: str | None = None
    password: str | None = Field(default=None, min_length=6)


class AccountRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    role: UserRole
    code_prefix: str | None
    phone: str | None
    is_active: bool


class AccountCreated(BaseModel):
    account: AccountRead
    password: str


class PasswordReset(BaseModel):
    password: str | None = Field(default=None, min_length=6)


class PasswordResetResult(BaseModel):
    password: str


class ActiveUpdate(BaseModel):
    is_active: bool


class UserMe(AccountRead):
    """Profil s ploščatimi pravicami / Profile with flat permissions."""
    permissions: list[str]  # ["cycles:read", ...]


class AuditLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    entity_type: str
    entity_id: str
    action: str
    changes: str | None
    user: str | None
    timestamp: datetime
