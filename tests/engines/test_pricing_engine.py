"""
Tests for the rate & price resolver.

Covers:
- Floor computation per pricing mode
- Explicit prices at, above and below the floor
- Auto pricing from a quantity
- Missing rates and invalid quantities
"""

from decimal import Decimal

import pytest

from marketplace_engines.pricing import (
    RateCard,
    compute_auto_price,
    compute_floor,
    quantity_for,
    resolve_price,
)
from marketplace_kernel.domain.values import PricingMode
from marketplace_kernel.exceptions import (
    InvalidPriceError,
    InvalidQuantityError,
    MissingRateError,
    PriceBelowFloorError,
)

RATES = RateCard(
    min_hourly_rate=Decimal("50"),
    min_daily_rate=Decimal("100"),
    min_fixed_rate=Decimal("100"),
)


class TestFloor:

    def test_hourly_floor_scales_with_hours(self):
        assert compute_floor(PricingMode.HOURLY, RATES, 4) == Decimal("200")

    def test_daily_floor_scales_with_days(self):
        assert compute_floor("daily", RATES, 3) == Decimal("300")

    def test_fixed_floor_ignores_quantity(self):
        assert compute_floor(PricingMode.FIXED, RATES, 7) == Decimal("100")

    def test_floor_without_quantity_is_the_rate(self):
        assert compute_floor(PricingMode.HOURLY, RATES) == Decimal("50")


class TestResolvePrice:

    def test_hourly_quantity_auto_prices(self):
        result = resolve_price(pricing_mode=PricingMode.HOURLY, rates=RATES, quantity=4)

        assert result.price == Decimal("200")
        assert result.auto_priced is True
        assert result.floor == Decimal("200")

    def test_explicit_price_above_floor_is_kept(self):
        result = resolve_price(
            pricing_mode=PricingMode.HOURLY,
            rates=RATES,
            quantity=4,
            explicit_price=Decimal("250"),
        )

        assert result.price == Decimal("250")
        assert result.auto_priced is False

    def test_explicit_price_equal_to_floor_is_accepted(self):
        result = resolve_price(
            pricing_mode=PricingMode.FIXED,
            rates=RATES,
            explicit_price=Decimal("100"),
        )
        assert result.price == Decimal("100")

    def test_fixed_below_minimum_is_rejected(self):
        with pytest.raises(PriceBelowFloorError) as exc_info:
            resolve_price(
                pricing_mode=PricingMode.FIXED,
                rates=RATES,
                explicit_price=Decimal("80"),
            )

        assert exc_info.value.floor == Decimal("100")
        assert exc_info.value.proposed == Decimal("80")
        assert exc_info.value.code == "PRICE_BELOW_FLOOR"

    def test_hourly_below_scaled_floor_is_rejected(self):
        with pytest.raises(PriceBelowFloorError) as exc_info:
            resolve_price(
                pricing_mode=PricingMode.HOURLY,
                rates=RATES,
                quantity=4,
                explicit_price=Decimal("150"),
            )
        assert exc_info.value.floor == Decimal("200")

    def test_no_price_and_no_quantity_leaves_price_unknown(self):
        result = resolve_price(pricing_mode=PricingMode.DAILY, rates=RATES)

        assert result.price is None
        assert result.auto_priced is False

    def test_fixed_without_price_leaves_price_unknown(self):
        result = resolve_price(pricing_mode=PricingMode.FIXED, rates=RATES, quantity=3)
        assert result.price is None

    @pytest.mark.parametrize("price", [Decimal("0"), Decimal("-5")])
    def test_non_positive_price_is_invalid(self, price):
        with pytest.raises(InvalidPriceError):
            resolve_price(pricing_mode=PricingMode.FIXED, rates=RATES, explicit_price=price)

    @pytest.mark.parametrize("mode", list(PricingMode))
    def test_missing_rate_is_a_configuration_error(self, mode):
        with pytest.raises(MissingRateError) as exc_info:
            resolve_price(pricing_mode=mode, rates=RateCard(), explicit_price=Decimal("500"))

        assert exc_info.value.pricing_mode == mode.value
        assert exc_info.value.http_status == 400

    @pytest.mark.parametrize("quantity", [0, -1, True])
    def test_invalid_quantity_rejected(self, quantity):
        with pytest.raises(InvalidQuantityError):
            resolve_price(pricing_mode=PricingMode.HOURLY, rates=RATES, quantity=quantity)


class TestAutoPrice:

    def test_daily_auto_price(self):
        assert compute_auto_price(PricingMode.DAILY, RATES, 3) == Decimal("300")

    def test_fixed_auto_price_is_flat_minimum(self):
        assert compute_auto_price(PricingMode.FIXED, RATES, None) == Decimal("100")
        assert compute_auto_price(PricingMode.FIXED, RATES, 3) == Decimal("100")

    def test_fixed_without_rate_gives_none(self):
        assert compute_auto_price(PricingMode.FIXED, RateCard(min_hourly_rate=Decimal("50")), None) is None

    def test_missing_rate_gives_none_instead_of_raising(self):
        assert compute_auto_price(PricingMode.HOURLY, RateCard(), 3) is None

    def test_missing_quantity_gives_none(self):
        assert compute_auto_price(PricingMode.HOURLY, RATES, None) is None


def test_quantity_for_picks_the_mode_field():
    assert quantity_for(PricingMode.HOURLY, 4, 2) == 4
    assert quantity_for(PricingMode.DAILY, 4, 2) == 2
    assert quantity_for(PricingMode.FIXED, 4, 2) is None
