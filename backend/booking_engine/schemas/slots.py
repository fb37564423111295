# backend/booking_engine/schemas/slots.py
"""
Pydantic schemas for availability API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SlotInfo(BaseModel):
    """A single bookable start."""
    time: str  # "9:00 AM"
    squeeze: bool = False

    model_config = {"from_attributes": True}


class BookedRange(BaseModel):
    start: datetime
    end: datetime


class AvailabilityDebug(BaseModel):
    """Schedule resolution behind a slot list (for debugging/admin)."""
    kind: str = Field(description="open / closed / no_schedule")
    source: Optional[str] = Field(None, description="override / weekly")
    start_of_day: Optional[str] = Field(None, alias="startOfDay")
    latest_start: Optional[str] = Field(None, alias="latestStart")
    end_of_day: Optional[str] = Field(None, alias="endOfDay")
    timezone: str
    booked: list[BookedRange] = []

    model_config = {"populate_by_name": True}


class AvailabilityResponse(BaseModel):
    slots: list[SlotInfo]
    debug: Optional[AvailabilityDebug] = None

    model_config = {"from_attributes": True}
