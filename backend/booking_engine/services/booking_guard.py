# backend/booking_engine/services/booking_guard.py
"""
Booking creation with the no-double-booking guarantee.

Flow:
1. Provider must exist and be active
2. Price / duration / deposit resolved server-side (pricing.py)
3. Civil date + start time → UTC interval [start_at, end_at)
4. Deposit payment verified (payments.py) before any slot is held
5. Under the provider lock: overlap pre-check, then insert + commit

Two layers keep active bookings of one provider from overlapping:
the per-provider lock (serializes writers) and the store-level exclusion
(trigger on SQLite, EXCLUDE constraint on PostgreSQL). Either one firing
is reported as ConflictError and nothing is persisted.

A payment intent pays for at most one booking: checked before the lock and
enforced by a unique column.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.generated import Bookings as DBBooking, Providers as DBProvider
from .booking_status import ACTIVE_STATUS_VALUES, BookingStatus
from .payments import PaymentGateway, verify_deposit_payment
from .pricing import resolve_pricing
from .provider_locks import LockRegistry, provider_key
from .slots.config import as_utc, local_to_utc, parse_civil_date, parse_start_time

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    provider_id: int
    service_id: int
    day_date: str
    start_time: str
    addon_service_ids: list[int] = field(default_factory=list)
    payment_intent_id: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    notes: Optional[str] = None


def _parse_day(raw: str) -> date:
    try:
        return parse_civil_date(raw)
    except ValueError as e:
        raise ValidationError(
            "Invalid date, expected YYYY-MM-DD",
            details={"field": "date", "value": raw},
        ) from e


def _parse_start(raw: str):
    try:
        return parse_start_time(raw)
    except ValueError as e:
        raise ValidationError(
            "Invalid start time, expected e.g. 10:00 AM",
            details={"field": "startTime", "value": raw},
        ) from e


def create_booking(
    db: Session,
    request: BookingRequest,
    gateway: PaymentGateway,
    locks: LockRegistry,
) -> DBBooking:
    """
    Persist a new booking iff its interval is free for the provider.

    Raises:
        ValidationError: bad date / time, or deposit intent missing
        NotFoundError: provider, service or provider price missing
        PaymentNotCompletedError / PaymentAmountMismatchError: deposit check
        ConflictError: interval overlaps an active booking, the payment
            intent already paid for another booking, or the provider lock
            is busy
    """
    provider = db.get(DBProvider, request.provider_id)
    if not provider or not provider.is_active:
        raise NotFoundError("Provider not found", details={"providerId": request.provider_id})

    pricing = resolve_pricing(
        db,
        request.provider_id,
        request.service_id,
        request.addon_service_ids,
    )

    day = _parse_day(request.day_date)
    wall = _parse_start(request.start_time)
    try:
        start_at = local_to_utc(day, wall, settings.tz)
        end_at = start_at + timedelta(minutes=pricing.total_duration_minutes)
    except OverflowError as e:
        raise ValidationError(
            "Booking time is out of range",
            details={"field": "date", "value": request.day_date},
        ) from e

    # Network call to the processor stays outside the lock
    check = verify_deposit_payment(gateway, request.payment_intent_id, pricing.deposit_cents)

    if check.intent_id and _get_booking_by_intent(db, check.intent_id):
        raise _intent_reused(check.intent_id)

    with locks.hold(provider_key(request.provider_id)):
        # Fresh snapshot: another writer may have committed while we waited
        db.expire_all()

        clash = find_overlapping(db, request.provider_id, start_at, end_at)
        if clash:
            logger.info(
                f"Slot taken: provider={request.provider_id} "
                f"{start_at.isoformat()} overlaps booking {clash.id}"
            )
            raise _slot_taken(request)

        now = datetime.now(timezone.utc)
        booking = DBBooking(
            provider_id=request.provider_id,
            primary_service_id=request.service_id,
            addon_service_ids=list(request.addon_service_ids),
            start_at=start_at,
            end_at=end_at,
            status=BookingStatus.CONFIRMED.value,
            total_cents=pricing.total_cents,
            deposit_cents=pricing.deposit_cents,
            payment_intent_id=check.intent_id,
            payment_status=check.processor_status,
            client_name=request.client_name,
            client_email=request.client_email,
            client_phone=request.client_phone,
            notes=request.notes,
            service_summary=pricing.service_summary,
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            # Unique payment_intent_id fired, not the overlap exclusion
            if check.intent_id and "payment_intent_id" in str(e.orig):
                logger.warning(f"Payment intent {check.intent_id} reused concurrently: {e.orig}")
                raise _intent_reused(check.intent_id) from e
            logger.warning(
                f"Store rejected booking: provider={request.provider_id} "
                f"{start_at.isoformat()}: {e.orig}"
            )
            raise _slot_taken(request) from e
        db.refresh(booking)

    logger.info(
        f"Booking {booking.id} created: provider={booking.provider_id} "
        f"start={start_at.isoformat()} status={booking.status} "
        f"total={booking.total_cents} deposit={booking.deposit_cents}"
    )
    return booking


def find_overlapping(
    db: Session,
    provider_id: int,
    start_at: datetime,
    end_at: datetime,
    exclude_id: Optional[int] = None,
) -> Optional[DBBooking]:
    """First active booking of the provider overlapping [start_at, end_at)."""
    query = db.query(DBBooking).filter(
        DBBooking.provider_id == provider_id,
        DBBooking.status.in_(ACTIVE_STATUS_VALUES),
        DBBooking.start_at < as_utc(end_at),
        DBBooking.end_at > as_utc(start_at),
    )
    if exclude_id is not None:
        query = query.filter(DBBooking.id != exclude_id)
    return query.order_by(DBBooking.start_at).first()


def _slot_taken(request: BookingRequest) -> ConflictError:
    return ConflictError(
        "That time was just booked. Please pick another slot.",
        code="SlotTaken",
        details={
            "providerId": request.provider_id,
            "date": request.day_date,
            "startTime": request.start_time,
        },
    )


def _intent_reused(intent_id: str) -> ConflictError:
    return ConflictError(
        "Payment intent already used for another booking",
        code="PaymentIntentReused",
        details={"paymentIntentId": intent_id},
    )


# ── Database helpers ─────────────────────────────────────────────────────


def _get_booking_by_intent(db: Session, intent_id: str) -> Optional[DBBooking]:
    return (
        db.query(DBBooking)
        .filter(DBBooking.payment_intent_id == intent_id)
        .first()
    )
