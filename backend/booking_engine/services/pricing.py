# backend/booking_engine/services/pricing.py
"""
Server-side price, duration and deposit of a booking.

Prices come from provider_services (per-provider price list), durations
from the provider override or the service's base duration. Client-supplied
totals are never used. All money is integer minor units (cents).
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.orm import Session

from ..errors import NotFoundError
from ..models.generated import ProviderServices as DBProviderService, Services as DBService
from .slots.config import BookingConfig, get_booking_config


@dataclass(frozen=True)
class ResolvedService:
    service_id: int
    name: str
    duration_minutes: int
    price_cents: int


@dataclass(frozen=True)
class PricingResult:
    total_duration_minutes: int
    total_cents: int
    deposit_cents: int
    items: list[ResolvedService] = field(default_factory=list)

    @property
    def service_summary(self) -> str:
        """Primary + add-ons, e.g. "Cut + Blow-dry, Toner"."""
        if not self.items:
            return ""
        primary, addons = self.items[0], self.items[1:]
        if not addons:
            return primary.name
        return f"{primary.name} + {', '.join(a.name for a in addons)}"


def calc_deposit(total_cents: int, config: Optional[BookingConfig] = None) -> int:
    """
    Deposit due for a booking total.

    Tier logic:
        total <= threshold (2500) → 0
        otherwise               → round_half_up(total × 30 %)
    """
    config = config or get_booking_config()
    if total_cents <= config.deposit_threshold_cents:
        return 0
    # Exact integer round-half-up of total * percent / 100
    return (total_cents * config.deposit_percent + 50) // 100


def resolve_pricing(
    db: Session,
    provider_id: int,
    primary_service_id: int,
    addon_service_ids: list[int],
    config: Optional[BookingConfig] = None,
) -> PricingResult:
    """
    Resolve durations and this provider's prices for primary + add-ons.

    Raises:
        NotFoundError: a service is unknown, or the provider has no active
            price for it (no default price is ever substituted)
    """
    requested = [primary_service_id, *addon_service_ids]
    unique_ids = set(requested)

    services = _get_services(db, unique_ids)
    missing = [sid for sid in requested if sid not in services]
    if missing:
        raise NotFoundError(
            "Some services not found",
            details={"missingServiceIds": missing},
        )

    prices = _get_provider_prices(db, provider_id, unique_ids)
    missing_prices = [sid for sid in requested if sid not in prices]
    if missing_prices:
        raise NotFoundError(
            "Missing provider pricing for some services",
            details={"providerId": provider_id, "missingPriceServiceIds": missing_prices},
        )

    items = []
    for sid in requested:
        svc = services[sid]
        ps = prices[sid]
        items.append(ResolvedService(
            service_id=sid,
            name=svc.name,
            duration_minutes=ps.duration_minutes or svc.duration_minutes,
            price_cents=ps.price_cents,
        ))

    total_duration = sum(item.duration_minutes for item in items)
    total_cents = sum(item.price_cents for item in items)

    return PricingResult(
        total_duration_minutes=total_duration,
        total_cents=total_cents,
        deposit_cents=calc_deposit(total_cents, config),
        items=items,
    )


# ── Database helpers ─────────────────────────────────────────────────────


def _get_services(db: Session, service_ids: set[int]) -> dict[int, DBService]:
    rows = db.query(DBService).filter(DBService.id.in_(service_ids)).all()
    return {row.id: row for row in rows}


def _get_provider_prices(
    db: Session,
    provider_id: int,
    service_ids: set[int],
) -> dict[int, DBProviderService]:
    rows = (
        db.query(DBProviderService)
        .filter(
            DBProviderService.provider_id == provider_id,
            DBProviderService.service_id.in_(service_ids),
            DBProviderService.is_active == 1,
        )
        .all()
    )
    return {row.service_id: row for row in rows}
