# backend/agenda/services/reminders/checker.py
"""
Automatic reminder passes.

Periodically walks every business with automatic reminders on, asks the
timing policy about each pending/confirmed appointment of today and
tomorrow, and sends the due ones over WhatsApp.

At-most-once delivery: appointments.reminder_sent is claimed with a
conditional UPDATE before sending and released again if the send fails,
so overlapping passes can't both send.

Runs as an asyncio task in backend lifespan.
Uses synchronous DB and HTTP (via asyncio.to_thread).
"""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.orm import Session

from ...config import settings
from ...constants import REMINDABLE_STATUSES
from ...database import SessionLocal
from ...models import Appointments, Businesses
from ...redis_client import redis_client
from ..clock import business_timezone, local_now
from ..whatsapp import EvolutionConfig, WhatsAppClient, clean_phone
from .formatters import format_reminder_message
from .policy import ReminderConfig, should_send_reminder_now

logger = logging.getLogger(__name__)

RUN_LOCK_KEY = "reminders:run_lock"
RUN_LOCK_TTL = 240  # seconds, longer than any sane pass

# Delete the lock only if it still holds this run's token
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"


class MessageSender(Protocol):
    def send_text(self, config: EvolutionConfig, phone: str, text: str) -> None: ...


async def reminder_checker_loop() -> None:
    """Run a reminder pass every reminder_check_interval seconds."""
    logger.info("reminder_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(run_reminder_pass)
            except asyncio.CancelledError:
                logger.info("reminder_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("reminder_checker_loop error")

            await asyncio.sleep(settings.reminder_check_interval)
    except asyncio.CancelledError:
        pass


def run_reminder_pass() -> list[dict] | None:
    """
    One locked pass (synchronous).

    Returns None when another worker holds the run lock.
    """
    token = secrets.token_hex(16)
    if not redis_client.set(RUN_LOCK_KEY, token, nx=True, ex=RUN_LOCK_TTL):
        logger.info("Reminder pass already running elsewhere, skipping")
        return None

    db = SessionLocal()
    try:
        results = process_due_reminders(db, WhatsAppClient())
        sent = sum(1 for r in results if r["status"] == STATUS_SENT)
        logger.info(f"Reminder pass done: {sent} sent, {len(results)} processed")
        return results
    finally:
        db.close()
        redis_client.eval(_RELEASE_LOCK_SCRIPT, 1, RUN_LOCK_KEY, token)


def process_due_reminders(
    db: Session,
    sender: MessageSender,
    now: datetime | None = None,
) -> list[dict]:
    """
    Send every reminder that is due now.

    One appointment's failure never aborts the pass; each outcome is
    recorded independently. Appointments that are simply not due yet
    are left out of the result.
    """
    results: list[dict] = []

    businesses = (
        db.query(Businesses)
        .filter(Businesses.automatic_reminders == 1)
        .all()
    )

    for business in businesses:
        try:
            results.extend(_process_business(db, business, sender, now))
        except Exception:
            db.rollback()
            logger.exception(f"Reminder pass failed for business {business.id}")

    return results


def send_manual_reminder(
    db: Session,
    appointment: Appointments,
    sender: MessageSender,
    now: datetime | None = None,
) -> dict:
    """Send a reminder for one appointment right away, ignoring timing."""
    business = appointment.business
    tz = business_timezone(business.timezone)
    today = local_now(tz, now).date()
    evolution = EvolutionConfig.from_raw(business.evolution_api_config)

    return _deliver(db, business, appointment, evolution, sender, today, manual=True)


# ── Per business / per appointment ───────────────────────────────────────


def _process_business(db: Session, business: Businesses, sender: MessageSender, now: datetime | None) -> list[dict]:
    tz = business_timezone(business.timezone)
    current = local_now(tz, now).replace(tzinfo=None)
    today = current.date()
    tomorrow = today + timedelta(days=1)

    config = ReminderConfig.from_raw(business.reminder_config)
    evolution = EvolutionConfig.from_raw(business.evolution_api_config)

    appointments = (
        db.query(Appointments)
        .filter(
            Appointments.business_id == business.id,
            Appointments.reminder_sent == 0,
            Appointments.status.in_(REMINDABLE_STATUSES),
            Appointments.date.in_([today.isoformat(), tomorrow.isoformat()]),
        )
        .order_by(Appointments.date, Appointments.time)
        .all()
    )

    results = []
    for appt in appointments:
        appt_id = appt.id
        try:
            decision = should_send_reminder_now(appt, config, current)
            if not decision.send:
                continue
            results.append(_deliver(db, business, appt, evolution, sender, today))
        except Exception as e:
            db.rollback()
            logger.exception(f"Error processing appointment {appt_id} for reminder")
            results.append(_outcome(appt_id, STATUS_FAILED, error=str(e)))

    return results


def _deliver(
    db: Session,
    business: Businesses,
    appt: Appointments,
    evolution: EvolutionConfig | None,
    sender: MessageSender,
    today,
    manual: bool = False,
) -> dict:
    """Claim, send, release on failure."""
    # Read before the claim commits and expires the instance
    appt_id, phone, appt_date, appt_time = appt.id, appt.client_phone, appt.date, appt.time
    if evolution is None or not clean_phone(phone):
        return _outcome(appt_id, STATUS_SKIPPED, reason="no_config_or_phone")

    text = format_reminder_message(
        business.name,
        appt.client_name,
        appt_date,
        appt_time,
        today,
        service_name=appt.service.name if appt.service else None,
        professional_name=appt.professional.name if appt.professional else None,
        manual=manual,
    )

    if not mark_reminder_sent(db, appt_id):
        return _outcome(appt_id, STATUS_SKIPPED, reason="already_sent")

    try:
        sender.send_text(evolution, phone, text)
    except Exception as e:
        release_reminder(db, appt_id)
        logger.warning(f"Reminder for appointment {appt_id} failed: {e}")
        return _outcome(appt_id, STATUS_FAILED, error=str(e))

    logger.info(f"Reminder sent for appointment {appt_id} ({appt_date} {appt_time})")
    return _outcome(appt_id, STATUS_SENT)


def _outcome(appointment_id: int, status: str, reason: str | None = None, error: str | None = None) -> dict:
    outcome = {"appointment_id": appointment_id, "status": status}
    if reason:
        outcome["reason"] = reason
    if error:
        outcome["error"] = error
    return outcome


# ── Conditional writes ───────────────────────────────────────────────────


def mark_reminder_sent(db: Session, appointment_id: int) -> bool:
    """
    Flip reminder_sent false → true.

    Returns True only for the caller whose UPDATE actually changed the row.
    """
    updated = (
        db.query(Appointments)
        .filter(Appointments.id == appointment_id, Appointments.reminder_sent == 0)
        .update({Appointments.reminder_sent: 1}, synchronize_session=False)
    )
    db.commit()
    return updated == 1


def release_reminder(db: Session, appointment_id: int) -> None:
    """Undo a claim after a failed delivery so a later pass can retry."""
    (
        db.query(Appointments)
        .filter(Appointments.id == appointment_id)
        .update({Appointments.reminder_sent: 0}, synchronize_session=False)
    )
    db.commit()
