"""Poti analitike / Analytics API routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.api.deps import require_permission
from mat_tracker.database import get_db
from mat_tracker.models.user import User
from mat_tracker.schemas.dashboard import ExpiringTestRead, KpiRead, MonthlyPoint, StatusSlice, TopSellerRead
from mat_tracker.services.analytics import AnalyticsService

router = APIRouter()


@router.get("/kpis", response_model=KpiRead)
async def kpis(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("analytics", "read")),
):
    return await AnalyticsService(db).kpis()


@router.get("/monthly", response_model=list[MonthlyPoint])
async def monthly_trend(
    salesperson_id: str | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("analytics", "read")),
):
    """Zadnjih 12 mesecev / Last 12 months, oldest first."""
    return await AnalyticsService(db).monthly_trend(salesperson_id=salesperson_id)


@router.get("/status-distribution", response_model=list[StatusSlice])
async def status_distribution(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("analytics", "read")),
):
    return await AnalyticsService(db).status_distribution()


@router.get("/top-sellers", response_model=list[TopSellerRead])
async def top_sellers(
    limit: int = 10,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("analytics", "read")),
):
    return await AnalyticsService(db).top_sellers(limit=min(limit, 50))


@router.get("/expiring", response_model=list[ExpiringTestRead])
async def expiring_tests(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_permission("analytics", "read")),
):
    return await AnalyticsService(db).expiring_tests()
