# backend/agenda/services/clock.py
"""
Business-local wall clock.

Every "now" / "today" decision is taken in the business timezone.
Businesses without a configured zone fall back to the legacy fixed offset.
"""

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..config import settings

logger = logging.getLogger(__name__)


def legacy_timezone() -> tzinfo:
    """Fixed UTC offset used before businesses had a timezone column."""
    return timezone(timedelta(hours=settings.default_utc_offset_hours))


def business_timezone(tz_name: str | None) -> tzinfo:
    """Resolve a business timezone name, falling back to the legacy offset."""
    if not tz_name:
        return legacy_timezone()
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {tz_name!r}, using legacy offset")
        return legacy_timezone()


def local_now(tz: tzinfo, now: datetime | None = None) -> datetime:
    """
    Current wall-clock time in tz.

    A naive `now` is taken to be UTC.
    """
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz)


def minute_of_day(dt: datetime) -> int:
    return dt.hour * 60 + dt.minute


def parse_date(value: str) -> date:
    """Parse "YYYY-MM-DD"; raises ValueError on anything else."""
    return datetime.strptime(value, "%Y-%m-%d").date()
