# backend/agenda/services/slots/__init__.py
"""
Slots calculation module.

Schedule resolver → occupancy collector → slot generator.
"""

from .config import SlotsConfig, get_slots_config, time_str_to_minutes, minutes_to_time_str
from .schedule import DaySchedule, TimeInterval, parse_weekly_schedule, resolve_day_schedule
from .occupancy import collect_occupied_ranges
from .generator import generate_slots
from .availability import SlotsLookupError, calculate_available_slots

__all__ = [
    "SlotsConfig",
    "get_slots_config",
    "time_str_to_minutes",
    "minutes_to_time_str",
    "DaySchedule",
    "TimeInterval",
    "parse_weekly_schedule",
    "resolve_day_schedule",
    "collect_occupied_ranges",
    "generate_slots",
    "SlotsLookupError",
    "calculate_available_slots",
]
