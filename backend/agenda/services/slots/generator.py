# backend/agenda/services/slots/generator.py
"""
Slot generator.

For each working interval, in the order it was configured:
  1. align the start up to the grid (09:10 → 09:30); the end stays raw
  2. step through the grid while the whole service still fits
  3. today: drop starts at or before the current minute
  4. drop starts whose [start, start + duration) overlaps any occupied range

Intervals are not sorted or merged: slots follow the configured order,
so a morning-then-afternoon config yields morning slots first.
"""

from collections.abc import Iterable, Sequence

from .config import SlotsConfig, get_slots_config, minutes_to_time_str, time_str_to_minutes
from .schedule import TimeInterval


def generate_slots(
    intervals: Sequence[TimeInterval],
    service_duration: int,
    occupied: Iterable[tuple[int, int]],
    is_today: bool = False,
    now_minute: int = 0,
    config: SlotsConfig | None = None,
) -> list[str]:
    """
    Generate bookable start times ("HH:MM").

    Empty list = no openings; never raises for well-formed intervals.
    """
    config = config or get_slots_config()
    step = config.slot_step_minutes
    occupied = list(occupied)

    slots: list[str] = []

    for interval in intervals:
        start = config.align_up(time_str_to_minutes(interval.start))
        end = time_str_to_minutes(interval.end)

        t = start
        while t + service_duration <= end:
            if is_today and t <= now_minute:
                t += step
                continue

            if not overlaps_any(t, t + service_duration, occupied):
                slots.append(minutes_to_time_str(t))

            t += step

    return slots


def overlaps_any(start: int, end: int, ranges: Iterable[tuple[int, int]]) -> bool:
    """Strict half-open overlap: touching ranges do not conflict."""
    return any(start < r_end and end > r_start for r_start, r_end in ranges)
