# backend/agenda/routers/slots.py
"""
Slots API endpoints.

POST /slots/available - bookable start times for professional + service + day
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.slots import AvailableSlotsRequest, AvailableSlotsResponse
from ..services.clock import parse_date
from ..services.slots import SlotsLookupError, calculate_available_slots

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/slots", tags=["slots"])


@router.post("/available", response_model=AvailableSlotsResponse)
def get_available_slots(
    data: AvailableSlotsRequest,
    db: Session = Depends(get_db),
):
    """Get available start times. Empty list = no openings, not an error."""
    if not data.professional_id or not data.service_id or not data.date or not data.business_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required parameters",
        )

    try:
        target_date = parse_date(data.date)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Date must be in YYYY-MM-DD format",
        )

    try:
        slots = calculate_available_slots(
            db=db,
            business_id=data.business_id,
            professional_id=data.professional_id,
            service_id=data.service_id,
            target_date=target_date,
        )
    except SlotsLookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        logger.error(f"Invalid scheduling data for professional {data.professional_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Invalid scheduling data",
        )
    except SQLAlchemyError:
        logger.exception("Slots lookup failed")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Storage unavailable",
        )

    return AvailableSlotsResponse(available_slots=slots)
