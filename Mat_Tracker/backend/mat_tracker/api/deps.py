"""
Odvisnosti za avtentikacijo in avtorizacijo / Authentication and authorization dependencies.
Vstavijo se v poti prek Depends().
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.database import get_db
from mat_tracker.models.user import User
from mat_tracker.utils.auth import decode_token, has_permission

security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Uporabnik iz JWT / Extract and validate the user from the JWT."""
    payload = decode_token(credentials.credentials)
    if payload is None or payload.get("type") != "access" or not payload.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")

    user = await db.get(User, str(payload["sub"]))
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")

    return user


def get_bearer_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """Žeton klicatelja za privilegirano storitev / Caller's token, forwarded to the privileged service."""
    return credentials.credentials


def require_permission(resource: str, action: str):
    """Tovarna odvisnosti, ki preveri pravico / Dependency factory that checks a permission."""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if has_permission(user.role, resource, action):
            return user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission required: {resource}:{action}",
        )

    return _check
