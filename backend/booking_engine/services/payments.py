# backend/booking_engine/services/payments.py
"""
Deposit payments through the external processor (Stripe).

- StripeGateway: thin adapter over PaymentIntent / Refund calls
- verify_deposit_payment: checks a caller-supplied intent before a booking
  is written (success state + exact deposit amount)
- issue_deposit_intent: creates the intent the client pays before booking

No call here is retried; processor transport failures surface as
UnexpectedError (or RefundFailedError for refunds).
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Optional

import stripe
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import (
    NotFoundError,
    PaymentAmountMismatchError,
    PaymentNotCompletedError,
    RefundFailedError,
    UnexpectedError,
    ValidationError,
)
from ..models.generated import Providers as DBProvider
from .pricing import resolve_pricing

logger = logging.getLogger(__name__)

INTENT_SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class IntentInfo:
    id: str
    status: str
    amount: int
    client_secret: Optional[str] = None
    latest_charge_id: Optional[str] = None


@dataclass(frozen=True)
class RefundResult:
    refunded: bool
    refund_id: Optional[str] = None
    reason: Optional[str] = None


class StripeGateway:
    """Stripe PaymentIntent / Refund adapter."""

    def __init__(self, secret_key: Optional[str], currency: str = "usd"):
        self.secret_key = secret_key
        self.currency = currency

    def _require_key(self) -> None:
        if not self.secret_key:
            raise UnexpectedError("Payment processor is not configured (STRIPE_SECRET_KEY)")
        stripe.api_key = self.secret_key

    @staticmethod
    def _to_intent(pi: Any) -> IntentInfo:
        charge = pi.get("latest_charge")
        if charge is not None and not isinstance(charge, str):
            charge = charge.get("id")
        return IntentInfo(
            id=pi["id"],
            status=pi["status"],
            amount=int(pi.get("amount") or 0),
            client_secret=pi.get("client_secret"),
            latest_charge_id=charge,
        )

    def retrieve_intent(self, intent_id: str) -> IntentInfo:
        self._require_key()
        try:
            pi = stripe.PaymentIntent.retrieve(intent_id, expand=["latest_charge"])
        except stripe.InvalidRequestError as e:
            raise ValidationError(
                "Unknown payment intent",
                details={"paymentIntentId": intent_id, "processorError": str(e)},
            ) from e
        except stripe.StripeError as e:
            logger.error(f"PaymentIntent retrieve failed for {intent_id}: {e}")
            raise UnexpectedError("Payment processor error", details={"processorError": str(e)}) from e
        return self._to_intent(pi)

    def create_deposit_intent(
        self,
        amount_cents: int,
        description: str,
        metadata: dict[str, str],
    ) -> IntentInfo:
        self._require_key()
        try:
            pi = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=self.currency,
                automatic_payment_methods={"enabled": True},
                description=description,
                metadata=metadata,
            )
        except stripe.StripeError as e:
            logger.error(f"PaymentIntent create failed: {e}")
            raise UnexpectedError("Payment processor error", details={"processorError": str(e)}) from e
        return self._to_intent(pi)

    def refund_deposit(
        self,
        intent_id: str,
        amount_cents: int,
        idempotency_key: str,
    ) -> RefundResult:
        """
        Refund a deposit in full.

        An intent without a charge (never captured) needs no refund and is
        reported as refunded=False, reason="no_charge_to_refund".

        Raises:
            RefundFailedError: any processor / transport failure
        """
        try:
            self._require_key()
            pi = stripe.PaymentIntent.retrieve(intent_id, expand=["latest_charge"])
            intent = self._to_intent(pi)
            if not intent.latest_charge_id:
                return RefundResult(refunded=False, reason="no_charge_to_refund")

            refund = stripe.Refund.create(
                charge=intent.latest_charge_id,
                amount=amount_cents,
                idempotency_key=idempotency_key,
            )
        except (stripe.StripeError, UnexpectedError) as e:
            raise RefundFailedError(
                "Deposit refund failed",
                details={"paymentIntentId": intent_id, "processorError": str(e)},
            ) from e
        return RefundResult(refunded=True, refund_id=refund["id"])


PaymentGateway = StripeGateway


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """Payment gateway for this process (FastAPI dependency)."""
    return StripeGateway(settings.stripe_secret_key, settings.currency)


# ── Verification ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PaymentCheck:
    intent_id: Optional[str]
    processor_status: Optional[str]


def verify_deposit_payment(
    gateway: PaymentGateway,
    intent_id: Optional[str],
    deposit_cents: int,
) -> PaymentCheck:
    """
    Check the caller's payment intent against the server-side deposit.

    Returns:
        PaymentCheck whose intent id and processor status are stored on the
        booking. Both are None when no deposit is due.

    Raises:
        ValidationError: deposit required but no intent supplied
        PaymentNotCompletedError: intent in any state other than succeeded
        PaymentAmountMismatchError: intent amount != deposit
    """
    if deposit_cents <= 0:
        return PaymentCheck(None, None)

    if not intent_id:
        raise ValidationError(
            "Deposit required. Missing paymentIntentId.",
            details={"missing": ["paymentIntentId"], "depositCents": deposit_cents},
        )

    intent = gateway.retrieve_intent(intent_id)

    if intent.status != INTENT_SUCCEEDED:
        logger.info(f"Deposit not completed: intent={intent_id} status={intent.status}")
        raise PaymentNotCompletedError(
            "Deposit payment not completed",
            details={"paymentIntentId": intent_id, "paymentIntentStatus": intent.status},
        )

    if intent.amount != deposit_cents:
        logger.warning(
            f"Deposit amount mismatch: intent={intent_id} "
            f"expected={deposit_cents} got={intent.amount}"
        )
        raise PaymentAmountMismatchError(
            "Deposit amount mismatch",
            details={
                "expectedDepositCents": deposit_cents,
                "paymentIntentAmount": intent.amount,
            },
        )

    return PaymentCheck(intent.id, intent.status)


# ── Deposit intent issuance ──────────────────────────────────────────────


def issue_deposit_intent(
    db: Session,
    gateway: PaymentGateway,
    provider_id: int,
    service_id: int,
    addon_service_ids: Optional[list[int]] = None,
    day_date: Optional[str] = None,
    start_time: Optional[str] = None,
) -> dict:
    """
    Compute the deposit for the requested services and, when one is due,
    create the payment intent the client pays before creating the booking.
    """
    provider = db.get(DBProvider, provider_id)
    if not provider or not provider.is_active:
        raise NotFoundError("Provider not found", details={"providerId": provider_id})

    pricing = resolve_pricing(db, provider_id, service_id, addon_service_ids or [])

    if pricing.deposit_cents <= 0:
        return {
            "depositCents": 0,
            "priceCents": pricing.total_cents,
            "paymentIntentId": None,
            "clientSecret": None,
            "note": "No deposit required for this service.",
        }

    metadata = {
        "provider_id": str(provider_id),
        "service_id": str(service_id),
    }
    if addon_service_ids:
        metadata["addon_service_ids"] = ",".join(str(sid) for sid in addon_service_ids)
    if day_date:
        metadata["day_date"] = day_date
    if start_time:
        metadata["start_time"] = start_time

    intent = gateway.create_deposit_intent(
        pricing.deposit_cents,
        description=f"Deposit for {pricing.service_summary}",
        metadata=metadata,
    )
    logger.info(
        f"Deposit intent {intent.id} issued: provider={provider_id} "
        f"amount={pricing.deposit_cents}"
    )

    return {
        "depositCents": pricing.deposit_cents,
        "priceCents": pricing.total_cents,
        "paymentIntentId": intent.id,
        "clientSecret": intent.client_secret,
        "note": None,
    }
