# backend/booking_engine/services/cancellation.py
"""
Client cancellation and the 48-hour deposit refund rule.

    start - now >= 48h  → cancelled_refunded (deposit refunded in full)
    start - now <  48h  → cancelled_late     (deposit forfeited)
    refund call fails   → cancelled_refund_failed (manual reconciliation)

Cancelling a booking that is already terminal is a no-op. The procedure
runs under a per-booking lock and writes the new status with a conditional
update on the active statuses, so a booking is refunded at most once. The
processor refund itself carries the idempotency key refund-booking-{id}.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..errors import NotFoundError, RefundFailedError
from ..models.generated import Bookings as DBBooking
from .booking_status import ACTIVE_STATUS_VALUES, BookingStatus, is_terminal, transition
from .payments import PaymentGateway
from .provider_locks import LockRegistry, booking_key
from .slots.config import BookingConfig, as_utc, get_booking_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefundOutcome:
    refunded: bool
    refund_id: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "refunded": self.refunded,
            "refundId": self.refund_id,
            "reason": self.reason,
            "error": self.error,
        }


@dataclass(frozen=True)
class CancellationResult:
    booking: DBBooking
    refund: RefundOutcome
    already_final: bool
    is_48_plus: bool


def refund_idempotency_key(booking_id: int) -> str:
    return f"refund-booking-{booking_id}"


def is_refundable(start_at: datetime, now: datetime, config: Optional[BookingConfig] = None) -> bool:
    """Notice of exactly the threshold still counts as refundable."""
    config = config or get_booking_config()
    return as_utc(start_at) - as_utc(now) >= config.cancellation_threshold


def cancel_booking(
    db: Session,
    booking_id: int,
    reason: Optional[str],
    gateway: PaymentGateway,
    locks: LockRegistry,
    now: Optional[datetime] = None,
    config: Optional[BookingConfig] = None,
) -> CancellationResult:
    """
    Cancel a booking and apply the deposit refund rule.

    Raises:
        NotFoundError: booking does not exist
    """
    now = now or datetime.now(timezone.utc)

    with locks.hold(booking_key(booking_id)):
        db.expire_all()
        booking = db.get(DBBooking, booking_id)
        if not booking:
            raise NotFoundError("Booking not found", details={"bookingId": booking_id})

        refundable = is_refundable(booking.start_at, now, config)

        if is_terminal(booking.status):
            logger.info(f"Booking {booking_id} already final ({booking.status}), nothing to cancel")
            return _already_final(booking, refundable)

        if refundable:
            target, outcome = _refund_deposit(booking, gateway)
        else:
            target = BookingStatus.CANCELLED_LATE
            outcome = RefundOutcome(refunded=False, reason="late_cancellation")

        transition(booking.status, target)

        updated = (
            db.query(DBBooking)
            .filter(
                DBBooking.id == booking_id,
                DBBooking.status.in_(ACTIVE_STATUS_VALUES),
            )
            .update(
                {
                    DBBooking.status: target.value,
                    DBBooking.cancelled_at: as_utc(now),
                    DBBooking.cancellation_reason: reason,
                    DBBooking.updated_at: datetime.now(timezone.utc),
                },
                synchronize_session=False,
            )
        )
        if not updated:
            # Finalised by a writer outside this lock
            db.rollback()
            db.refresh(booking)
            return _already_final(booking, refundable)

        db.commit()
        db.refresh(booking)

    logger.info(
        f"Booking {booking_id} cancelled: status={booking.status} "
        f"refunded={outcome.refunded} reason={outcome.reason or outcome.error}"
    )
    return CancellationResult(
        booking=booking,
        refund=outcome,
        already_final=False,
        is_48_plus=refundable,
    )


def _refund_deposit(
    booking: DBBooking,
    gateway: PaymentGateway,
) -> tuple[BookingStatus, RefundOutcome]:
    if booking.deposit_cents <= 0 or not booking.payment_intent_id:
        return BookingStatus.CANCELLED_REFUNDED, RefundOutcome(refunded=False, reason="no_deposit")

    try:
        result = gateway.refund_deposit(
            booking.payment_intent_id,
            booking.deposit_cents,
            idempotency_key=refund_idempotency_key(booking.id),
        )
    except RefundFailedError as e:
        logger.error(
            f"Refund failed for booking {booking.id} "
            f"(intent={booking.payment_intent_id}, amount={booking.deposit_cents}): {e.details}"
        )
        return BookingStatus.CANCELLED_REFUND_FAILED, RefundOutcome(refunded=False, error=e.message)

    return BookingStatus.CANCELLED_REFUNDED, RefundOutcome(
        refunded=result.refunded,
        refund_id=result.refund_id,
        reason=result.reason,
    )


def _already_final(booking: DBBooking, refundable: bool) -> CancellationResult:
    return CancellationResult(
        booking=booking,
        refund=RefundOutcome(refunded=False, reason="already_final"),
        already_final=True,
        is_48_plus=refundable,
    )
