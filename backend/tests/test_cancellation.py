"""
Cancellation: the 48-hour refund rule and idempotent terminal states.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from booking_engine.errors import NotFoundError
from booking_engine.services.cancellation import cancel_booking, is_refundable
from booking_engine.services.slots.config import as_utc

from tests.helpers import add_booking, local

START = local(10, 0)


@pytest.fixture
def paid_booking(db, catalogue, gateway):
    gateway.add_intent("pi_paid", 3000)
    return add_booking(
        db, catalogue.provider_id, catalogue.cut_id, START, START + timedelta(hours=1),
        deposit_cents=3000, payment_intent_id="pi_paid",
    )


def test_threshold_boundary():
    assert is_refundable(START, START - timedelta(hours=48))
    assert not is_refundable(START, START - timedelta(hours=47, minutes=59, seconds=59))


def test_exactly_48h_refunds(db, gateway, locks, paid_booking):
    now = START - timedelta(hours=48)

    result = cancel_booking(db, paid_booking.id, "Schedule change", gateway, locks, now=now)

    assert result.booking.status == "cancelled_refunded"
    assert result.is_48_plus is True
    assert result.already_final is False
    assert result.refund.refunded is True
    assert gateway.refunds == [("pi_paid", 3000, f"refund-booking-{paid_booking.id}")]
    assert result.booking.cancellation_reason == "Schedule change"
    assert as_utc(result.booking.cancelled_at) == now


def test_one_second_late_forfeits_deposit(db, gateway, locks, paid_booking):
    now = START - timedelta(hours=47, minutes=59, seconds=59)

    result = cancel_booking(db, paid_booking.id, None, gateway, locks, now=now)

    assert result.booking.status == "cancelled_late"
    assert result.is_48_plus is False
    assert result.refund.refunded is False
    assert result.refund.reason == "late_cancellation"
    assert gateway.refunds == []


def test_booking_without_deposit(db, catalogue, gateway, locks):
    booking = add_booking(
        db, catalogue.provider_id, catalogue.toner_id, START, START + timedelta(minutes=30)
    )

    result = cancel_booking(db, booking.id, None, gateway, locks, now=START - timedelta(days=5))

    assert result.booking.status == "cancelled_refunded"
    assert result.refund.refunded is False
    assert result.refund.reason == "no_deposit"
    assert gateway.refunds == []


def test_intent_without_charge(db, catalogue, gateway, locks):
    gateway.add_intent("pi_processing", 3000, status="processing", charge=None)
    booking = add_booking(
        db, catalogue.provider_id, catalogue.cut_id, START, START + timedelta(hours=1),
        status="pending_payment", deposit_cents=3000, payment_intent_id="pi_processing",
    )

    result = cancel_booking(db, booking.id, None, gateway, locks, now=START - timedelta(days=3))

    assert result.booking.status == "cancelled_refunded"
    assert result.refund.refunded is False
    assert result.refund.reason == "no_charge_to_refund"


def test_refund_failure_still_cancels(db, gateway, locks, paid_booking):
    gateway.fail_refunds = True

    result = cancel_booking(
        db, paid_booking.id, None, gateway, locks, now=START - timedelta(days=3)
    )

    assert result.booking.status == "cancelled_refund_failed"
    assert result.refund.refunded is False
    assert result.refund.error == "Deposit refund failed"
    assert result.booking.cancelled_at is not None


def test_second_cancel_is_a_noop(db, gateway, locks, paid_booking):
    now = START - timedelta(days=3)
    cancel_booking(db, paid_booking.id, "first", gateway, locks, now=now)

    again = cancel_booking(db, paid_booking.id, "second", gateway, locks, now=now)

    assert again.already_final is True
    assert again.booking.status == "cancelled_refunded"
    assert again.booking.cancellation_reason == "first"
    assert again.refund.refunded is False
    assert len(gateway.refunds) == 1


def test_cancelled_booking_frees_the_slot(db, catalogue, gateway, locks, paid_booking):
    cancel_booking(db, paid_booking.id, None, gateway, locks, now=START - timedelta(days=3))

    replacement = add_booking(
        db, catalogue.provider_id, catalogue.cut_id, START, START + timedelta(hours=1)
    )

    assert replacement.status == "confirmed"


def test_unknown_booking(db, gateway, locks):
    with pytest.raises(NotFoundError):
        cancel_booking(db, 404, None, gateway, locks)


def test_concurrent_cancels_refund_once(session_factory, gateway, locks, paid_booking):
    barrier = threading.Barrier(2)
    now = START - timedelta(days=3)

    def _worker(_):
        session = session_factory()
        try:
            barrier.wait(timeout=5)
            return cancel_booking(session, paid_booking.id, None, gateway, locks, now=now).already_final
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(_worker, range(2)))

    assert sorted(results) == [False, True]
    assert len(gateway.refunds) == 1
