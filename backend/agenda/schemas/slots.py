# backend/agenda/schemas/slots.py
"""
Pydantic schemas for slots API.
"""

from typing import Optional
from pydantic import BaseModel, Field


class AvailableSlotsRequest(BaseModel):
    """
    Request for bookable start times.

    Fields are optional at the schema level so a missing one is reported
    as 400 "Missing required parameters" instead of a validation error.
    """
    professional_id: Optional[int] = None
    service_id: Optional[int] = None
    date: Optional[str] = Field(None, description="Date in YYYY-MM-DD format")
    business_id: Optional[int] = None

    model_config = {"from_attributes": True}


class AvailableSlotsResponse(BaseModel):
    """Possibly empty list of "HH:MM" start times."""
    available_slots: list[str] = Field(alias="availableSlots")

    model_config = {"from_attributes": True, "populate_by_name": True}
