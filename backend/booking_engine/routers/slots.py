# backend/booking_engine/routers/slots.py
"""
Availability API endpoint.

GET /availability?providerId=&date=&durationMinutes=[&debug=1]
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import ValidationError
from ..schemas.slots import AvailabilityDebug, AvailabilityResponse, BookedRange
from ..services.slots import calculate_availability, get_booking_config
from ..services.slots.config import parse_civil_date

router = APIRouter(prefix="/availability", tags=["availability"])


def _parse_query(
    provider_id: Optional[str],
    target_date: Optional[str],
    duration_minutes: Optional[str],
) -> tuple[int, date, int]:
    """Collect every missing / invalid parameter into a single 400."""
    raw = {"providerId": provider_id, "date": target_date, "durationMinutes": duration_minutes}
    missing = [name for name, value in raw.items() if not value]
    if missing:
        raise ValidationError(
            f"Missing required query parameter(s): {', '.join(missing)}",
            details={"missing": missing},
        )

    invalid = []
    try:
        pid = int(provider_id)
        if pid <= 0:
            invalid.append("providerId")
    except ValueError:
        invalid.append("providerId")
        pid = 0

    try:
        day = parse_civil_date(target_date)
    except ValueError:
        invalid.append("date")
        day = None

    try:
        minutes = int(duration_minutes)
        if not 0 < minutes <= get_booking_config().max_duration_minutes:
            invalid.append("durationMinutes")
    except ValueError:
        invalid.append("durationMinutes")
        minutes = 0

    if invalid:
        raise ValidationError(
            f"Invalid query parameter(s): {', '.join(invalid)}",
            details={"invalid": invalid},
        )
    return pid, day, minutes


@router.get("", response_model=AvailabilityResponse, response_model_exclude_none=True)
def get_availability(
    provider_id: Optional[str] = Query(None, alias="providerId"),
    target_date: Optional[str] = Query(None, alias="date"),
    duration_minutes: Optional[str] = Query(None, alias="durationMinutes"),
    debug: bool = False,
    db: Session = Depends(get_db),
):
    """Bookable start times of a provider on a day for a total duration."""
    pid, day, minutes = _parse_query(provider_id, target_date, duration_minutes)

    result = calculate_availability(db, pid, day, minutes)
    response = AvailabilityResponse(slots=result["slots"])

    if debug:
        window = result["window"]
        response.debug = AvailabilityDebug(
            **window.as_debug(),
            timezone=settings.business_timezone,
            booked=[BookedRange(start=start, end=end) for start, end in result["booked"]],
        )

    return response
