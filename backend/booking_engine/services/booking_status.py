# backend/booking_engine/services/booking_status.py
"""
Booking lifecycle.

    pending_payment ──► confirmed ──► no_show_charged | no_show_failed_charge
          │                 │
          └────────┬────────┘
                   ▼
    cancelled_refunded | cancelled_late | cancelled_refund_failed

Every cancelled_* and no_show_* status is terminal.
"""

from enum import Enum

from ..errors import InvalidTransitionError


class BookingStatus(str, Enum):
    PENDING_PAYMENT = "pending_payment"
    CONFIRMED = "confirmed"
    CANCELLED_REFUNDED = "cancelled_refunded"
    CANCELLED_LATE = "cancelled_late"
    CANCELLED_REFUND_FAILED = "cancelled_refund_failed"
    NO_SHOW_CHARGED = "no_show_charged"
    NO_SHOW_FAILED_CHARGE = "no_show_failed_charge"


ACTIVE_STATUSES = frozenset({BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED})

CANCELLED_STATUSES = frozenset({
    BookingStatus.CANCELLED_REFUNDED,
    BookingStatus.CANCELLED_LATE,
    BookingStatus.CANCELLED_REFUND_FAILED,
})

TERMINAL_STATUSES = CANCELLED_STATUSES | {
    BookingStatus.NO_SHOW_CHARGED,
    BookingStatus.NO_SHOW_FAILED_CHARGE,
}

# Plain strings for SQL filters
ACTIVE_STATUS_VALUES = tuple(sorted(s.value for s in ACTIVE_STATUSES))

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING_PAYMENT: frozenset({BookingStatus.CONFIRMED}) | CANCELLED_STATUSES,
    BookingStatus.CONFIRMED: CANCELLED_STATUSES | {
        BookingStatus.NO_SHOW_CHARGED,
        BookingStatus.NO_SHOW_FAILED_CHARGE,
    },
}


def is_active(status: str) -> bool:
    return BookingStatus(status) in ACTIVE_STATUSES


def is_terminal(status: str) -> bool:
    return BookingStatus(status) in TERMINAL_STATUSES


def transition(current: str, target: str) -> BookingStatus:
    """
    Validate a status change and return the target status.

    Raises:
        InvalidTransitionError: target is not reachable from current
    """
    current_status = BookingStatus(current)
    target_status = BookingStatus(target)

    allowed = ALLOWED_TRANSITIONS.get(current_status, frozenset())
    if target_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot move booking from {current_status.value} to {target_status.value}",
            details={"from": current_status.value, "to": target_status.value},
        )
    return target_status
