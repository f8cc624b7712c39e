# backend/agenda/services/slots/occupancy.py
"""
Occupancy collector: time ranges a professional already can't take.

Output is a flat list of half-open [start, end) minute ranges.
Ranges are neither merged nor sorted; the generator checks every one.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date

from ...constants import AppointmentStatus
from .config import MINUTES_PER_DAY, get_slots_config, time_str_to_minutes

logger = logging.getLogger(__name__)

FULL_DAY = (0, MINUTES_PER_DAY)


def collect_occupied_ranges(
    appointments: Iterable,
    blocks: Iterable,
    durations: Mapping,
    target_date: date | None = None,
    fallback_duration: int | None = None,
) -> list[tuple[int, int]]:
    """
    Collect occupied ranges from appointments and blocks.

    Args:
        appointments: objects with .time, .status, .service_id
        blocks: objects with .start_date, .start_time, .end_time
        durations: service_id → duration in minutes for the booked services
        target_date: date being evaluated; partial blocks only apply
            literally on their start_date
        fallback_duration: duration for appointments whose service is missing

    Entries with malformed stored times are skipped with a warning.
    """
    if fallback_duration is None:
        fallback_duration = get_slots_config().fallback_duration

    ranges: list[tuple[int, int]] = []

    for appt in appointments:
        if appt.status == AppointmentStatus.CANCELLED.value:
            continue

        try:
            start = time_str_to_minutes(appt.time)
        except ValueError:
            logger.warning(f"Skipping booked time with malformed value {appt.time!r}")
            continue

        duration = durations.get(appt.service_id)
        if not duration:
            logger.warning(
                f"Service {appt.service_id} not found for booked time {appt.time}, "
                f"assuming {fallback_duration} min"
            )
            duration = fallback_duration
        ranges.append((start, start + duration))

    for block in blocks:
        try:
            ranges.append(block_range(block, target_date))
        except ValueError:
            logger.warning(
                f"Skipping block with malformed times {block.start_time!r}-{block.end_time!r}"
            )

    return ranges


def block_range(block, target_date: date | None = None) -> tuple[int, int]:
    """
    Range covered by a block on target_date.

    No start/end time → whole day. Times apply to start_date only;
    other dates of a multi-day partial block are blocked whole.
    """
    if not block.start_time or not block.end_time:
        return FULL_DAY

    if target_date is not None and str(block.start_date) != target_date.isoformat():
        return FULL_DAY

    return time_str_to_minutes(block.start_time), time_str_to_minutes(block.end_time)
