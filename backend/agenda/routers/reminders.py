# backend/agenda/routers/reminders.py
"""
Reminder endpoints.

POST /reminders/process - run one automatic reminder pass now
POST /reminders/{appointment_id}/send - manual reminder for one appointment
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Appointments as DBAppointments
from ..schemas.reminders import ReminderOutcome, ReminderPassResponse
from ..services.reminders import process_due_reminders, send_manual_reminder
from ..services.whatsapp import WhatsAppClient

router = APIRouter(prefix="/reminders", tags=["reminders"])


def get_sender() -> WhatsAppClient:
    return WhatsAppClient()


@router.post("/process", response_model=ReminderPassResponse, response_model_exclude_none=True)
def process_reminders(
    db: Session = Depends(get_db),
    sender: WhatsAppClient = Depends(get_sender),
):
    results = process_due_reminders(db, sender)
    return ReminderPassResponse(success=True, processed=results)


@router.post("/{appointment_id}/send", response_model=ReminderOutcome, response_model_exclude_none=True)
def send_reminder(
    appointment_id: int,
    db: Session = Depends(get_db),
    sender: WhatsAppClient = Depends(get_sender),
):
    appointment = db.get(DBAppointments, appointment_id)
    if not appointment:
        raise HTTPException(status_code=404, detail="Not found")
    if appointment.reminder_sent:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Reminder already sent")

    outcome = send_manual_reminder(db, appointment, sender)
    if outcome.get("reason") == "already_sent":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Reminder already sent")
    return outcome
