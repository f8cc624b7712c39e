# backend/agenda/services/slots/availability.py
"""
Available slots for one professional, one service, one day.

Schedule resolver → occupancy collector → slot generator.
Reads only; safe to run from any number of concurrent requests.
"""

import logging
from datetime import date, datetime

from sqlalchemy.orm import Session

from ...constants import AppointmentStatus
from ...models import Appointments, Businesses, ProfessionalBlocks, Professionals, Services
from ..clock import business_timezone, local_now, minute_of_day
from .config import SlotsConfig, get_slots_config
from .generator import generate_slots
from .occupancy import collect_occupied_ranges
from .schedule import parse_weekly_schedule, resolve_day_schedule

logger = logging.getLogger(__name__)


class SlotsLookupError(LookupError):
    """Service or professional does not exist for the business."""


def calculate_available_slots(
    db: Session,
    business_id: int,
    professional_id: int,
    service_id: int,
    target_date: date,
    now: datetime | None = None,
    config: SlotsConfig | None = None,
) -> list[str]:
    """
    Calculate bookable start times.

    Raises:
        SlotsLookupError: service or professional not found for business_id
    """
    config = config or get_slots_config()

    # Step 1: Service being booked
    service = _get_service(db, business_id, service_id)
    if not service:
        raise SlotsLookupError(f"Service {service_id} not found")

    # Step 2: Working intervals for the day
    professional = _get_professional(db, business_id, professional_id)
    if not professional:
        raise SlotsLookupError(f"Professional {professional_id} not found")

    weekly = parse_weekly_schedule(professional.schedule)
    day = resolve_day_schedule(weekly, target_date)
    if not day.intervals:
        return []

    # Step 3: Occupied ranges
    appointments = _get_professional_appointments(db, professional_id, target_date)
    blocks = _get_professional_blocks(db, professional_id, target_date)
    durations = _get_service_durations(db, {a.service_id for a in appointments})

    occupied = collect_occupied_ranges(
        appointments,
        blocks,
        durations,
        target_date=target_date,
        fallback_duration=config.fallback_duration,
    )

    # Step 4: "now" once per request, in the business timezone
    business = db.get(Businesses, business_id)
    tz = business_timezone(business.timezone if business else None)
    current = local_now(tz, now)
    is_today = current.date() == target_date

    slots = generate_slots(
        day.intervals,
        service.duration,
        occupied,
        is_today=is_today,
        now_minute=minute_of_day(current),
        config=config,
    )

    logger.debug(
        f"slots professional={professional_id} service={service_id} "
        f"date={target_date.isoformat()}: {len(slots)} available"
    )
    return slots


# ── Database helpers ─────────────────────────────────────────────────────


def _get_service(db: Session, business_id: int, service_id: int):
    return (
        db.query(Services)
        .filter(Services.id == service_id, Services.business_id == business_id)
        .first()
    )


def _get_professional(db: Session, business_id: int, professional_id: int):
    return (
        db.query(Professionals)
        .filter(Professionals.id == professional_id, Professionals.business_id == business_id)
        .first()
    )


def _get_professional_appointments(db: Session, professional_id: int, target_date: date) -> list:
    """Non-cancelled appointments of the professional on date."""
    return (
        db.query(Appointments)
        .filter(
            Appointments.professional_id == professional_id,
            Appointments.date == target_date.isoformat(),
            Appointments.status != AppointmentStatus.CANCELLED.value,
        )
        .all()
    )


def _get_professional_blocks(db: Session, professional_id: int, target_date: date) -> list:
    """Blocks whose [start_date, end_date] contains date."""
    date_str = target_date.isoformat()

    return (
        db.query(ProfessionalBlocks)
        .filter(
            ProfessionalBlocks.professional_id == professional_id,
            ProfessionalBlocks.start_date <= date_str,
            ProfessionalBlocks.end_date >= date_str,
        )
        .all()
    )


def _get_service_durations(db: Session, service_ids: set) -> dict[int, int]:
    service_ids.discard(None)
    if not service_ids:
        return {}
    rows = db.query(Services.id, Services.duration).filter(Services.id.in_(service_ids)).all()
    return {service_id: duration for service_id, duration in rows}
