"""
Avtentikacija in pravice / Authentication and permissions.
Žetone izda zunanji ponudnik; tukaj jih le preverimo.
Tokens are issued by the external provider; they are only verified here.
"""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from mat_tracker.config import settings
from mat_tracker.models.user import UserRole

# Viri in akcije / Resources and actions
RESOURCES = [
    "qr-codes",
    "cycles",
    "pickups",
    "reminders",
    "companies",
    "tasks",
    "dashboard",
    "analytics",
    "orders",
    "accounts",
    "audit",
]
ACTIONS = ["read", "create", "update", "delete"]

_ALL = {(r, a) for r in RESOURCES for a in ACTIONS}


def _grant(grants: dict[str, tuple[str, ...]]) -> frozenset[tuple[str, str]]:
    return frozenset((resource, action) for resource, actions in grants.items() for action in actions)


# Matrika vloga -> pravice; vsaka vloga mora biti navedena
# Role -> permission matrix; every role must be listed
ROLE_PERMISSIONS: dict[UserRole, frozenset[tuple[str, str]]] = {
    UserRole.PRODAJALEC: _grant({
        "qr-codes": ("read",),
        "cycles": ("read", "create", "update"),
        "pickups": ("read",),
        "reminders": ("read", "create", "update", "delete"),
        "companies": ("read", "create", "update"),
        "tasks": ("read", "create", "update", "delete"),
        "dashboard": ("read",),
        "orders": ("read", "create", "update"),
    }),
    UserRole.INVENTAR: _grant({
        "qr-codes": ("read", "create", "update", "delete"),
        "cycles": ("read", "update"),
        "pickups": ("read", "create", "update", "delete"),
        "reminders": ("read", "create", "update", "delete"),
        "companies": ("read", "create", "update"),
        "tasks": ("read", "update"),
        "dashboard": ("read",),
        "analytics": ("read",),
        "orders": ("read", "update"),
        "audit": ("read",),
    }),
    UserRole.ADMIN: frozenset(_ALL),
}

_missing_roles = set(UserRole) - set(ROLE_PERMISSIONS)
if _missing_roles:
    raise RuntimeError(f"Roles without a permission set: {sorted(r.value for r in _missing_roles)}")


def has_permission(role: UserRole, resource: str, action: str) -> bool:
    """Ali ima vloga pravico / Whether the role grants the permission."""
    return (resource, action) in ROLE_PERMISSIONS[role]


def is_scoped_to_self(role: UserRole) -> bool:
    """Prodajalec vidi samo svoje kode in cikle / Salespeople only see their own codes and cycles."""
    return role == UserRole.PRODAJALEC


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    """Ustvari JWT (za teste in orodja) / Create a JWT (for tests and tooling)."""
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"sub": user_id, "type": "access", "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict | None:
    """Dekodiraj JWT / Decode a JWT. Returns None if invalid."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
