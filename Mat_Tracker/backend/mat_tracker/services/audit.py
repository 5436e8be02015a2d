"""Zapis v dnevnik sprememb / Audit trail writer."""

import json

from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.models.audit import AuditLog
from mat_tracker.models.user import User
from mat_tracker.utils.timeutils import utcnow


def log_audit(
    db: AsyncSession,
    entity_type: str,
    entity_id: str,
    action: str,
    user: User | None,
    changes: dict | None = None,
) -> AuditLog:
    """Dodaj vnos v audit_logs / Add an audit_logs row to the current transaction."""
    entry = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        changes=json.dumps(changes, ensure_ascii=False, default=str) if changes else None,
        user=user.email if user else None,
        timestamp=utcnow(),
    )
    db.add(entry)
    return entry
