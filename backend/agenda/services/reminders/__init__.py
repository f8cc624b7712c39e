# backend/agenda/services/reminders/__init__.py
"""
Automatic WhatsApp reminders: timing policy and periodic passes.
"""

from .policy import ReminderConfig, ReminderDecision, reminder_target, should_send_reminder_now
from .checker import (
    mark_reminder_sent,
    process_due_reminders,
    release_reminder,
    reminder_checker_loop,
    run_reminder_pass,
    send_manual_reminder,
)

__all__ = [
    "ReminderConfig",
    "ReminderDecision",
    "reminder_target",
    "should_send_reminder_now",
    "mark_reminder_sent",
    "process_due_reminders",
    "release_reminder",
    "reminder_checker_loop",
    "run_reminder_pass",
    "send_manual_reminder",
]
