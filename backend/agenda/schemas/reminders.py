# backend/agenda/schemas/reminders.py

from typing import Literal, Optional
from pydantic import BaseModel, Field


class ReminderOutcome(BaseModel):
    appointment_id: int = Field(alias="appointmentId")
    status: Literal["sent", "failed", "skipped"]
    reason: Optional[str] = None
    error: Optional[str] = None

    model_config = {"from_attributes": True, "populate_by_name": True}


class ReminderPassResponse(BaseModel):
    success: bool = True
    processed: list[ReminderOutcome]
