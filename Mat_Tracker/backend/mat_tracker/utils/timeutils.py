"""Časovne pomožne funkcije / Time helpers.

Vsi časi v bazi so naivni UTC / All stored datetimes are naive UTC.
"""

from datetime import datetime, timedelta, timezone
from typing import Annotated
from zoneinfo import ZoneInfo

from pydantic import AfterValidator

from mat_tracker.config import settings


def utcnow() -> datetime:
    """Trenutni čas v naivnem UTC / Current time as naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime | None) -> datetime | None:
    """Pretvori v naivni UTC / Normalise to naive UTC; a naive value is taken as UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# Vhodni časi v shemah (npr. "...Z", "+02:00") / Incoming schema datetimes such as "...Z" or "+02:00"
UtcDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]


def next_local_morning(now: datetime, days: int = 1, hour: int | None = None, tz_name: str | None = None) -> datetime:
    """Čez N dni ob uri v lokalnem času / N days ahead at a fixed local hour, returned as naive UTC.

    Uporablja se za "jutri ob 09:00" / Used for "tomorrow at 09:00".
    """
    tz = ZoneInfo(tz_name or settings.LOCAL_TIMEZONE)
    hour = settings.FOLLOWUP_HOUR if hour is None else hour
    local_now = now.replace(tzinfo=timezone.utc).astimezone(tz)
    target_day = (local_now + timedelta(days=days)).date()
    local_target = datetime(target_day.year, target_day.month, target_day.day, hour, 0, tzinfo=tz)
    return local_target.astimezone(timezone.utc).replace(tzinfo=None)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Število celih dni / Whole days elapsed (floored)."""
    return int((end - start).total_seconds() // 86400)


def month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def shift_months(moment: datetime, months: int) -> datetime:
    """Premik za N mesecev na prvi dan / Shift by N months, pinned to the 1st."""
    index = moment.year * 12 + (moment.month - 1) + months
    return month_start(moment).replace(year=index // 12, month=index % 12 + 1)
