"""Poti revizijske sledi / Audit log API routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.audit import AuditLog
from mat_tracker.models.user import User
from mat_tracker.schemas.account import AuditLogRead

router = APIRouter()


@router.get("/")
async def list_audit_logs(
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    action: str | None = Query(default=None),
    limit: int = Query(default=100, le=500),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("audit", "read")),
):
    """Dnevnik sprememb, najnovejši prvi / Audit log, newest first."""
    filters = []
    if entity_type:
        filters.append(AuditLog.entity_type == entity_type)
    if entity_id:
        filters.append(AuditLog.entity_id == entity_id)
    if action:
        filters.append(AuditLog.action == action)

    total = await db.scalar(select(func.count(AuditLog.id)).where(*filters)) or 0
    result = await db.execute(
        select(AuditLog).where(*filters).order_by(AuditLog.timestamp.desc()).offset(offset).limit(limit)
    )
    return {
        "total": total,
        "items": [AuditLogRead.model_validate(entry) for entry in result.scalars().all()],
    }
