"""Poti nadzorne plošče / Dashboard API routes."""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.user import User
from mat_tracker.schemas.dashboard import DashboardActionsRead
from mat_tracker.services.dashboard_actions import load_dashboard_actions

router = APIRouter()


@router.get("/actions", response_model=DashboardActionsRead)
async def dashboard_actions(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("dashboard", "read")),
):
    """Nujno in danes / Urgent and today action lists, recomputed on every call."""
    actions = await load_dashboard_actions(db)
    return DashboardActionsRead(
        urgent=[asdict(a) for a in actions.urgent],
        today=[asdict(a) for a in actions.today],
        total_urgent=actions.total_urgent,
        total_today=actions.total_today,
    )
