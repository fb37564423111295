# backend/booking_engine/services/slots/__init__.py
"""
Slots calculation module.

Schedule resolution (override > weekly rule) and on-the-fly availability
of a provider for a day and a requested duration.
"""

from .config import BookingConfig, get_booking_config
from .resolver import ScheduleResolution, WindowKind, resolve_schedule
from .availability import Slot, calculate_availability, iter_slots

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "ScheduleResolution",
    "WindowKind",
    "resolve_schedule",
    "Slot",
    "calculate_availability",
    "iter_slots",
]
