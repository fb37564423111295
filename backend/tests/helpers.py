# backend/tests/helpers.py
"""Test doubles and seed data shared by the test modules."""

from datetime import date, datetime, time, timedelta, timezone
from types import SimpleNamespace
from typing import Optional

from booking_engine.errors import RefundFailedError, ValidationError
from booking_engine.models.generated import (
    Bookings,
    Providers,
    ProviderSchedules,
    ProviderServices,
    Services,
)
from booking_engine.services.payments import IntentInfo, RefundResult

# Monday; America/Phoenix is UTC-7 all year, so 09:00 local == 16:00 UTC
BOOKING_DAY = date(2030, 3, 4)


def utc(hour: int, minute: int = 0, day: date = BOOKING_DAY) -> datetime:
    return datetime(day.year, day.month, day.day, hour, minute, tzinfo=timezone.utc)


def local(hour: int, minute: int = 0, day: date = BOOKING_DAY) -> datetime:
    """Business-zone wall clock on day, as aware UTC."""
    return utc(hour, minute, day) + timedelta(hours=7)


class FakeGateway:
    """In-memory stand-in for the Stripe gateway."""

    def __init__(self):
        self.intents: dict[str, IntentInfo] = {}
        self.created: list[dict] = []
        self.refunds: list[tuple[str, int, str]] = []
        self.fail_refunds = False

    def add_intent(
        self,
        intent_id: str,
        amount: int,
        status: str = "succeeded",
        charge: Optional[str] = "ch_test",
    ) -> IntentInfo:
        intent = IntentInfo(
            id=intent_id,
            status=status,
            amount=amount,
            client_secret=f"{intent_id}_secret",
            latest_charge_id=charge,
        )
        self.intents[intent_id] = intent
        return intent

    def retrieve_intent(self, intent_id: str) -> IntentInfo:
        if intent_id not in self.intents:
            raise ValidationError("Unknown payment intent", details={"paymentIntentId": intent_id})
        return self.intents[intent_id]

    def create_deposit_intent(self, amount_cents, description, metadata) -> IntentInfo:
        self.created.append(
            {"amount": amount_cents, "description": description, "metadata": metadata}
        )
        return self.add_intent(
            f"pi_created_{len(self.created)}",
            amount_cents,
            status="requires_payment_method",
            charge=None,
        )

    def refund_deposit(self, intent_id, amount_cents, idempotency_key) -> RefundResult:
        if self.fail_refunds:
            raise RefundFailedError("Deposit refund failed", details={"paymentIntentId": intent_id})
        self.refunds.append((intent_id, amount_cents, idempotency_key))
        intent = self.intents.get(intent_id)
        if intent is None or not intent.latest_charge_id:
            return RefundResult(refunded=False, reason="no_charge_to_refund")
        return RefundResult(refunded=True, refund_id=f"re_{len(self.refunds)}")


def seed_catalogue(db) -> SimpleNamespace:
    """
    One active provider open every day 09:00-17:00 (latest start 16:00),
    plus an inactive provider.

    Prices: cut 10000 (60 min), toner 2000 (30 min), trim 2000 (30 min).
    """
    provider = Providers(display_name="Ava Stone", is_active=1, bio="Colour specialist")
    inactive = Providers(display_name="Ben Gray", is_active=0)
    cut = Services(name="Cut", duration_minutes=60, category="hair")
    toner = Services(name="Toner", duration_minutes=30, category="colour")
    trim = Services(name="Trim", duration_minutes=30, category="hair")
    unpriced = Services(name="Perm", duration_minutes=120, category="hair")
    db.add_all([provider, inactive, cut, toner, trim, unpriced])
    db.flush()

    db.add_all([
        ProviderServices(provider_id=provider.id, service_id=cut.id, price_cents=10000),
        ProviderServices(provider_id=provider.id, service_id=toner.id, price_cents=2000),
        ProviderServices(provider_id=provider.id, service_id=trim.id, price_cents=2000),
        ProviderServices(provider_id=inactive.id, service_id=cut.id, price_cents=9000),
    ])
    for dow in range(7):
        db.add(ProviderSchedules(
            provider_id=provider.id,
            day_of_week=dow,
            is_closed=0,
            start_time=time(9, 0),
            end_time=time(17, 0),
            latest_start_time=time(16, 0),
        ))
    db.commit()

    return SimpleNamespace(
        provider_id=provider.id,
        inactive_provider_id=inactive.id,
        cut_id=cut.id,
        toner_id=toner.id,
        trim_id=trim.id,
        unpriced_id=unpriced.id,
    )


def add_booking(
    db,
    provider_id: int,
    service_id: int,
    start_at: datetime,
    end_at: datetime,
    status: str = "confirmed",
    deposit_cents: int = 0,
    payment_intent_id: Optional[str] = None,
) -> Bookings:
    """Insert a booking row directly, bypassing the booking guard."""
    now = datetime.now(timezone.utc)
    booking = Bookings(
        provider_id=provider_id,
        primary_service_id=service_id,
        addon_service_ids=[],
        start_at=start_at,
        end_at=end_at,
        status=status,
        total_cents=10000,
        deposit_cents=deposit_cents,
        payment_intent_id=payment_intent_id,
        created_at=now,
        updated_at=now,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking
