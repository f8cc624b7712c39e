# backend/agenda/services/reminders/policy.py
"""
Reminder timing policy.

Decides, for one appointment, whether a periodic reminder pass should send
its reminder right now. Stateless: the "already sent" state lives in
appointments.reminder_sent, claimed by the caller with a conditional write.

Target send time:
  - early appointment (before early_threshold_hour) with previous-day
    reminders on → previous calendar day at previous_day_time
  - otherwise → appointment time − same_day_hours_before

The pass fires when the target lies in [now − 2h15m, now + 15m], which
tolerates scheduler jitter and a few skipped runs.

same_day_enabled is the master switch: when off, nothing is sent,
previous-day reminders included.
"""

import json
import logging
from dataclasses import dataclass, fields
from datetime import date, datetime, timedelta

from ..clock import parse_date
from ..slots.config import time_str_to_minutes

logger = logging.getLogger(__name__)

WINDOW_LOOKBACK = timedelta(hours=2, minutes=15)
WINDOW_AHEAD = timedelta(minutes=15)

KIND_PREVIOUS_DAY = "previous_day"
KIND_SAME_DAY = "same_day"


@dataclass(frozen=True)
class ReminderConfig:
    same_day_enabled: bool = True
    same_day_hours_before: float = 2
    previous_day_enabled: bool = True
    early_threshold_hour: str = "09:00"
    previous_day_time: str = "19:00"

    @classmethod
    def from_raw(cls, raw) -> "ReminderConfig":
        """Build from stored JSON (str or dict); missing keys keep defaults."""
        if not raw:
            return cls()
        if isinstance(raw, str):
            try:
                raw = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("reminder_config is not valid JSON, using defaults")
                return cls()
        if not isinstance(raw, dict):
            return cls()

        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in raw.items() if k in known and v is not None})


@dataclass(frozen=True)
class ReminderDecision:
    send: bool
    reason: str
    kind: str | None = None
    target: datetime | None = None


def reminder_target(appt_date: date, appt_time: str, config: ReminderConfig) -> tuple[datetime, str]:
    """
    Compute (target send time, kind) as naive business-local datetimes.
    """
    appt_minutes = time_str_to_minutes(appt_time)
    appt_dt = datetime.combine(appt_date, datetime.min.time()) + timedelta(minutes=appt_minutes)

    is_early = appt_minutes < time_str_to_minutes(config.early_threshold_hour)

    if is_early and config.previous_day_enabled:
        previous_day = datetime.combine(appt_date - timedelta(days=1), datetime.min.time())
        target = previous_day + timedelta(minutes=time_str_to_minutes(config.previous_day_time))
        return target, KIND_PREVIOUS_DAY

    return appt_dt - timedelta(hours=config.same_day_hours_before), KIND_SAME_DAY


def should_send_reminder_now(appointment, config: ReminderConfig, now: datetime) -> ReminderDecision:
    """
    Decide whether to send the reminder for appointment now.

    Args:
        appointment: object with .date ("YYYY-MM-DD" or date) and .time ("HH:MM")
        config: business reminder configuration
        now: naive wall-clock time in the business timezone

    Raises:
        ValueError: malformed appointment date/time or config times
    """
    if not config.same_day_enabled:
        return ReminderDecision(send=False, reason="reminders_disabled")

    appt_date = appointment.date
    if isinstance(appt_date, str):
        appt_date = parse_date(appt_date)

    target, kind = reminder_target(appt_date, appointment.time, config)

    if now - WINDOW_LOOKBACK <= target <= now + WINDOW_AHEAD:
        return ReminderDecision(send=True, reason="due", kind=kind, target=target)

    return ReminderDecision(send=False, reason="outside_window", kind=kind, target=target)
