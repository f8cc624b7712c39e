# backend/agenda/services/slots/config.py
"""
Slot grid configuration and minute helpers.

Minutes since midnight is the unit for all interval math.
"""

import re
from dataclasses import dataclass
from functools import lru_cache

from ...config import settings

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


@dataclass(frozen=True)
class SlotsConfig:
    """
    Configuration for slot generation.

    Attributes:
        slot_step_minutes: Grid step; interval starts are aligned up to it (15/30/60)
        fallback_duration: Duration assumed for a booked appointment whose
            service can no longer be found
    """
    slot_step_minutes: int = 30
    fallback_duration: int = 30

    def __post_init__(self):
        if self.slot_step_minutes not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {self.slot_step_minutes}")

    def align_up(self, minutes: int) -> int:
        """Round up to the next grid boundary (09:10 -> 09:30 for a 30 min grid)."""
        remainder = minutes % self.slot_step_minutes
        if remainder:
            return minutes + self.slot_step_minutes - remainder
        return minutes


@lru_cache
def get_slots_config() -> SlotsConfig:
    """Get slots configuration (singleton)."""
    return SlotsConfig(
        slot_step_minutes=settings.slot_step_minutes,
        fallback_duration=settings.fallback_service_duration,
    )


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" (or "HH:MM:SS") to minutes since midnight."""
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time string: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 24 or minutes > 59:
        raise ValueError(f"Invalid time string: {value!r}")
    return hours * 60 + minutes


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to zero-padded "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
