"""Poti API / API routes."""

from fastapi import APIRouter

from mat_tracker.api import (
    accounts,
    analytics,
    audit,
    companies,
    cycles,
    dashboard,
    map,
    orders,
    pickups,
    qr_codes,
    reminders,
    tasks,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(qr_codes.router, prefix="/qr-codes", tags=["qr-codes"])
api_router.include_router(cycles.router, prefix="/cycles", tags=["cycles"])
api_router.include_router(pickups.router, prefix="/pickups", tags=["pickups"])
api_router.include_router(reminders.router, prefix="/reminders", tags=["reminders"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(map.router, prefix="/map", tags=["map"])
api_router.include_router(companies.router, prefix="/companies", tags=["companies"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
