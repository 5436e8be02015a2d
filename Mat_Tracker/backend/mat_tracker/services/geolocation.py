"""
Geolokacija po najboljših močeh / Best-effort geolocation.
Neuspeh nikoli ne prekine prehoda; rezultat je takrat None.
A failure never aborts a transition; the result is None instead.
"""

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from mat_tracker.config import settings
from mat_tracker.utils.timeutils import to_naive_utc, utcnow

log = logging.getLogger(__name__)


@dataclass
class GeoFix:
    lat: float
    lng: float
    accuracy_m: float | None = None
    captured_at: datetime | None = None  # naivni ali z zamikom / naive UTC or offset-aware


LocationProvider = Callable[[], Awaitable["GeoFix | None"]]


def is_valid_fix(fix: GeoFix, now: datetime, max_age_seconds: int) -> bool:
    if not (math.isfinite(fix.lat) and math.isfinite(fix.lng)):
        return False
    if not (-90.0 <= fix.lat <= 90.0 and -180.0 <= fix.lng <= 180.0):
        return False
    captured_at = to_naive_utc(fix.captured_at)
    if captured_at is not None and now - captured_at > timedelta(seconds=max_age_seconds):
        return False
    return True


def fixed_provider(fix: GeoFix | None) -> LocationProvider:
    """Ponudnik za koordinate, ki jih pošlje odjemalec / Provider for client-reported coordinates."""

    async def _provide() -> GeoFix | None:
        return fix

    return _provide


async def capture_location(
    provider: LocationProvider | None,
    timeout: float | None = None,
    max_age_seconds: int | None = None,
) -> GeoFix | None:
    """Pridobi lokacijo s časovno omejitvijo / Fetch a location under a timeout."""
    if provider is None:
        return None
    timeout = settings.GEOLOCATION_TIMEOUT_SECONDS if timeout is None else timeout
    max_age_seconds = settings.GEOLOCATION_MAX_AGE_SECONDS if max_age_seconds is None else max_age_seconds

    try:
        fix = await asyncio.wait_for(provider(), timeout=timeout)
        valid = fix is not None and is_valid_fix(fix, utcnow(), max_age_seconds)
    except asyncio.TimeoutError:
        log.warning("Geolocation timed out after %.1fs", timeout)
        return None
    except Exception:
        log.warning("Geolocation provider failed", exc_info=True)
        return None

    if fix is None:
        return None
    if not valid:
        log.warning("Discarding invalid or stale location fix (%s, %s)", fix.lat, fix.lng)
        return None
    return fix
