"""
Analitika in KPI / Analytics and KPI.
"""

import math
from datetime import datetime, timedelta

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mat_tracker.config import settings
from mat_tracker.models.company import Company
from mat_tracker.models.cycle import Cycle, CycleStatus
from mat_tracker.models.qr_code import QRCode
from mat_tracker.models.user import User, UserRole
from mat_tracker.services.cycle_lifecycle import days_remaining
from mat_tracker.utils.timeutils import month_start, shift_months, utcnow

STATUS_LABELS = {
    CycleStatus.ON_TEST: "Na testu",
    CycleStatus.CLEAN: "Čisti",
    CycleStatus.DIRTY: "Umazani",
    CycleStatus.WAITING_DRIVER: "Čaka šoferja",
}


def conversion_rate(signed: int, created: int) -> int:
    """Konverzija v celih % / Conversion rate as a whole percent; 0 when nothing was created."""
    if created <= 0:
        return 0
    return math.floor(signed / created * 100 + 0.5)


class AnalyticsService:
    """Izračun KPI / KPI calculation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _count(self, *conditions) -> int:
        return await self.db.scalar(select(func.count(Cycle.id)).where(*conditions)) or 0

    async def kpis(self, now: datetime | None = None) -> dict:
        now = now or utcnow()
        window_start = now - timedelta(days=settings.CONVERSION_WINDOW_DAYS)

        recent = await self._count(Cycle.created_at >= window_start)
        recent_signed = await self._count(Cycle.created_at >= window_start, Cycle.contract_signed.is_(True))
        return {
            "active_cycles": await self._count(Cycle.status != CycleStatus.COMPLETED),
            "on_test": await self._count(Cycle.status == CycleStatus.ON_TEST),
            "conversion_rate": conversion_rate(recent_signed, recent),
            "total_contracts": await self._count(Cycle.contract_signed.is_(True)),
        }

    async def monthly_trend(
        self, salesperson_id: str | None = None, now: datetime | None = None, months: int | None = None
    ) -> list[dict]:
        """Zadnjih N mesecev, najstarejši prvi / Last N months, oldest first."""
        now = now or utcnow()
        months = months or settings.TREND_MONTHS
        seller = [Cycle.salesperson_id == salesperson_id] if salesperson_id else []

        trend = []
        current = month_start(now)
        for offset in range(months - 1, -1, -1):
            start = shift_months(current, -offset)
            end = shift_months(start, 1)
            trend.append({
                "month": start.strftime("%Y-%m"),
                "new_tests": await self._count(Cycle.test_start_date >= start, Cycle.test_start_date < end, *seller),
                "contracts": await self._count(
                    Cycle.contract_signed.is_(True),
                    Cycle.contract_signed_at >= start,
                    Cycle.contract_signed_at < end,
                    *seller,
                ),
                "completed": await self._count(
                    Cycle.status == CycleStatus.COMPLETED,
                    Cycle.completed_at >= start,
                    Cycle.completed_at < end,
                    *seller,
                ),
            })
        return trend

    async def status_distribution(self) -> list[dict]:
        rows = await self.db.execute(
            select(Cycle.status, func.count(Cycle.id))
            .where(Cycle.status != CycleStatus.COMPLETED)
            .group_by(Cycle.status)
        )
        counts = dict(rows.all())
        return [
            {"status": status.value, "label": label, "value": counts[status]}
            for status, label in STATUS_LABELS.items()
            if counts.get(status)
        ]

    async def top_sellers(self, limit: int = 10) -> list[dict]:
        rows = await self.db.execute(
            select(
                User.id,
                User.first_name,
                User.last_name,
                User.code_prefix,
                func.count(Cycle.id),
                func.coalesce(func.sum(case((Cycle.contract_signed.is_(True), 1), else_=0)), 0),
                func.coalesce(func.sum(case((Cycle.status == CycleStatus.ON_TEST, 1), else_=0)), 0),
            )
            .outerjoin(Cycle, Cycle.salesperson_id == User.id)
            .where(User.role == UserRole.PRODAJALEC, User.is_active.is_(True))
            .group_by(User.id, User.first_name, User.last_name, User.code_prefix)
        )
        sellers = [
            {
                "id": uid,
                "name": f"{first or ''} {last or ''}".strip(),
                "code_prefix": prefix,
                "total_cycles": total,
                "contracts": int(contracts),
                "on_test": int(on_test),
            }
            for uid, first, last, prefix, total, contracts, on_test in rows.all()
        ]
        sellers.sort(key=lambda s: s["contracts"], reverse=True)
        return sellers[:limit]

    async def expiring_tests(self, now: datetime | None = None) -> list[dict]:
        """Testi, ki potečejo v 3 dneh ali so že potekli / Tests ending within 3 days or overdue."""
        now = now or utcnow()
        rows = await self.db.execute(
            select(Cycle, QRCode.code, Company.name, User.first_name, User.last_name)
            .join(QRCode, QRCode.id == Cycle.qr_code_id)
            .join(User, User.id == Cycle.salesperson_id)
            .outerjoin(Company, Company.id == Cycle.company_id)
            .where(Cycle.status == CycleStatus.ON_TEST, Cycle.test_start_date.is_not(None))
        )
        expiring = []
        for cycle, code, company_name, first, last in rows.all():
            remaining = days_remaining(cycle.test_start_date, now, cycle.extended_count)
            if remaining <= settings.EXPIRING_SOON_DAYS:
                expiring.append({
                    "cycle_id": cycle.id,
                    "qr_code": code,
                    "company_name": company_name,
                    "days_remaining": remaining,
                    "salesperson_name": f"{first or ''} {last or ''}".strip(),
                })
        expiring.sort(key=lambda e: e["days_remaining"])
        return expiring
