# backend/agenda/services/slots/schedule.py
"""
Schedule resolver: working intervals of a professional for a given date.

Stored format (professionals.schedule):
    [
        {"day": "Segunda", "active": true,
         "intervals": [{"start": "09:00", "end": "12:00"}, {"start": "13:00", "end": "18:00"}]},
        ...
    ]

Absence of a schedule is never an error: the day is simply inactive.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import date

from ...constants import WEEKDAY_LABELS
from .config import time_str_to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeInterval:
    """Same-day working interval, local wall clock."""
    start: str
    end: str


@dataclass(frozen=True)
class DaySchedule:
    day: str
    active: bool = False
    intervals: tuple[TimeInterval, ...] = field(default_factory=tuple)


def weekday_label(target_date: date) -> str:
    """Weekday label with 0 = Sunday indexing (date.weekday() is 0 = Monday)."""
    return WEEKDAY_LABELS[(target_date.weekday() + 1) % 7]


def parse_weekly_schedule(raw) -> list[DaySchedule]:
    """
    Parse stored schedule JSON (string or already-decoded list).

    Malformed days and intervals are dropped with a warning.
    """
    if raw is None or raw == "":
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Schedule is not valid JSON, treating as unconfigured")
            return []

    if not isinstance(raw, list):
        return []

    days: list[DaySchedule] = []
    seen: set[str] = set()

    for entry in raw:
        if not isinstance(entry, dict) or entry.get("day") not in WEEKDAY_LABELS:
            continue
        # At most one entry per weekday; first one wins
        if entry["day"] in seen:
            continue
        seen.add(entry["day"])

        intervals = []
        for interval in entry.get("intervals") or []:
            parsed = _parse_interval(interval)
            if parsed is not None:
                intervals.append(parsed)

        days.append(DaySchedule(
            day=entry["day"],
            active=bool(entry.get("active")),
            intervals=tuple(intervals),
        ))

    return days


def resolve_day_schedule(weekly: list[DaySchedule] | None, target_date: date) -> DaySchedule:
    """
    Return the DaySchedule for target_date.

    Unknown day or inactive day → inactive DaySchedule with no intervals.
    """
    label = weekday_label(target_date)

    for day in weekly or []:
        if day.day == label:
            if not day.active:
                return DaySchedule(day=label)
            return day

    return DaySchedule(day=label)


def _parse_interval(interval) -> TimeInterval | None:
    if not isinstance(interval, dict):
        return None
    start, end = interval.get("start"), interval.get("end")
    try:
        time_str_to_minutes(start)
        time_str_to_minutes(end)
    except ValueError:
        logger.warning(f"Dropping malformed schedule interval {interval!r}")
        return None
    return TimeInterval(start=start, end=end)
