"""
marketplace_engines.pricing -- Rate & price resolution.

Responsibility:
    Turn a provider's rate card, a pricing mode, an optional quantity and an
    optional explicit price into the price an engagement is stored with.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import marketplace_kernel domain values, db.types, exceptions
    and logging.

Invariants enforced:
    - The floor is ``min_rate * quantity`` when a quantity applies (hourly
      hours, daily days), otherwise the flat minimum rate.
    - An explicit price is kept as given, provided it is positive and not
      below the floor.
    - Without an explicit price, a known quantity auto-prices the engagement
      at the floor; with no quantity the price stays unknown (None).
    - A missing minimum rate for the requested mode is a configuration
      error, for fixed pricing as much as for hourly and daily.

Failure modes:
    - MissingRateError when the rate card has no rate for the mode.
    - InvalidPriceError when the explicit price is zero or negative.
    - PriceBelowFloorError(floor, proposed) when it is below the floor.
    - InvalidQuantityError when a quantity is given but not >= 1.

Usage:
    from marketplace_engines.pricing import RateCard, resolve_price

    rates = RateCard(min_hourly_rate=Decimal("50"))
    result = resolve_price(
        pricing_mode=PricingMode.HOURLY, rates=rates, quantity=4,
    )
    result.price  # Decimal("200")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from marketplace_engines.tracer import traced_engine
from marketplace_kernel.domain.values import PricingMode
from marketplace_kernel.exceptions import (
    InvalidPriceError,
    InvalidQuantityError,
    MissingRateError,
    PriceBelowFloorError,
)
from marketplace_kernel.logging_config import get_logger

logger = get_logger("engines.pricing")


@dataclass(frozen=True)
class RateCard:
    """A provider's minimum rate per pricing mode.  None means "not offered"."""

    min_hourly_rate: Decimal | None = None
    min_daily_rate: Decimal | None = None
    min_fixed_rate: Decimal | None = None
    provider_id: UUID | None = None

    def rate_for(self, pricing_mode: PricingMode | str) -> Decimal | None:
        mode = PricingMode(pricing_mode)
        if mode is PricingMode.HOURLY:
            return self.min_hourly_rate
        if mode is PricingMode.DAILY:
            return self.min_daily_rate
        return self.min_fixed_rate


@dataclass(frozen=True)
class PriceResolution:
    """
    Outcome of price resolution.

    ``price`` is None only when no explicit price was given and the mode has
    no quantity to multiply the minimum rate by.
    """

    pricing_mode: PricingMode
    price: Decimal | None
    floor: Decimal
    minimum_rate: Decimal
    quantity: int | None
    auto_priced: bool


def quantity_for(
    pricing_mode: PricingMode | str,
    hours: int | None,
    days: int | None,
) -> int | None:
    """The quantity that scales the minimum rate for ``pricing_mode``."""
    mode = PricingMode(pricing_mode)
    if mode is PricingMode.HOURLY:
        return hours
    if mode is PricingMode.DAILY:
        return days
    return None


def minimum_rate_for(pricing_mode: PricingMode | str, rates: RateCard) -> Decimal:
    mode = PricingMode(pricing_mode)
    rate = rates.rate_for(mode)
    if rate is None:
        raise MissingRateError(
            mode.value,
            str(rates.provider_id) if rates.provider_id else None,
        )
    return rate


def _validate_quantity(pricing_mode: PricingMode, quantity: int | None) -> int | None:
    if pricing_mode is PricingMode.FIXED:
        return None
    if quantity is None:
        return None
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        field = "proposed_hours" if pricing_mode is PricingMode.HOURLY else "proposed_days"
        raise InvalidQuantityError(field, quantity)
    return quantity


def compute_floor(
    pricing_mode: PricingMode | str,
    rates: RateCard,
    quantity: int | None = None,
) -> Decimal:
    """Minimum acceptable price for the mode and quantity."""
    mode = PricingMode(pricing_mode)
    rate = minimum_rate_for(mode, rates)
    quantity = _validate_quantity(mode, quantity)
    if quantity is None:
        return rate
    return rate * quantity


@traced_engine(
    "pricing", "1.0",
    fingerprint_fields=("pricing_mode", "rates", "quantity", "explicit_price"),
)
def resolve_price(
    *,
    pricing_mode: PricingMode | str,
    rates: RateCard,
    quantity: int | None = None,
    explicit_price: Decimal | None = None,
) -> PriceResolution:
    """
    Resolve the stored price of a new engagement.

    Preconditions:
        explicit_price, when given, is a Decimal (never float).

    Postconditions:
        Returns a PriceResolution whose ``price`` is the explicit price, the
        auto-computed ``min_rate * quantity``, or None.

    Raises:
        MissingRateError, InvalidPriceError, PriceBelowFloorError,
        InvalidQuantityError.
    """
    mode = PricingMode(pricing_mode)
    minimum_rate = minimum_rate_for(mode, rates)
    quantity = _validate_quantity(mode, quantity)
    floor = minimum_rate if quantity is None else minimum_rate * quantity

    if explicit_price is not None:
        if explicit_price <= 0:
            raise InvalidPriceError(explicit_price)
        if explicit_price < floor:
            logger.info(
                "price_below_floor",
                extra={
                    "pricing_mode": mode.value,
                    "floor": str(floor),
                    "proposed": str(explicit_price),
                },
            )
            raise PriceBelowFloorError(floor, explicit_price)
        return PriceResolution(
            pricing_mode=mode,
            price=explicit_price,
            floor=floor,
            minimum_rate=minimum_rate,
            quantity=quantity,
            auto_priced=False,
        )

    if quantity is not None:
        return PriceResolution(
            pricing_mode=mode,
            price=floor,
            floor=floor,
            minimum_rate=minimum_rate,
            quantity=quantity,
            auto_priced=True,
        )

    return PriceResolution(
        pricing_mode=mode,
        price=None,
        floor=floor,
        minimum_rate=minimum_rate,
        quantity=None,
        auto_priced=False,
    )


def compute_auto_price(
    pricing_mode: PricingMode | str,
    rates: RateCard,
    quantity: int | None,
) -> Decimal | None:
    """
    Price to fill in when an accepted proposal names none.

    ``min_rate * quantity`` for hourly/daily; the flat ``min_fixed_rate``
    for fixed (quantity is ignored).  None when the rate is missing, or for
    hourly/daily when the quantity is missing or invalid.  Never raises.
    """
    mode = PricingMode(pricing_mode)
    rate = rates.rate_for(mode)
    if mode is PricingMode.FIXED:
        return rate
    if rate is None or quantity is None or isinstance(quantity, bool) or quantity < 1:
        return None
    return rate * quantity
