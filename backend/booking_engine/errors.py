# backend/booking_engine/errors.py
"""
Domain errors of the booking engine.

Every error carries a message, a machine-readable code and structured
details, so the API layer can render a response the caller can act on
(e.g. re-query availability after a Conflict, complete payment after
PaymentNotCompleted).
"""

from typing import Any, Optional

from fastapi import status


class BookingEngineError(Exception):
    """Base class for all engine errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(BookingEngineError):
    """Missing or malformed input. No side effects were performed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(BookingEngineError):
    """Unknown provider, service, price mapping or booking."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(BookingEngineError):
    """Requested interval overlaps an active booking of the provider."""

    status_code = status.HTTP_409_CONFLICT


class InvalidTransitionError(BookingEngineError):
    """Booking status change not allowed from the current status."""

    status_code = status.HTTP_409_CONFLICT


class PaymentNotCompletedError(BookingEngineError):
    """The deposit payment has not reached the processor's success state."""

    status_code = status.HTTP_402_PAYMENT_REQUIRED


class PaymentAmountMismatchError(BookingEngineError):
    """The authorised amount differs from the deposit computed server-side."""

    status_code = status.HTTP_400_BAD_REQUEST


class RefundFailedError(BookingEngineError):
    """
    The processor rejected or failed a refund; needs manual reconciliation.

    Internal only: cancellation turns it into cancelled_refund_failed, so it
    never reaches the API error handler.
    """


class UnexpectedError(BookingEngineError):
    """Store or processor transport failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
