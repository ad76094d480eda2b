"""
Configuration Validator (``marketplace_config.validator``).

Checks a parsed ``MarketplaceConfig`` before it is handed to services.
Errors block activation; warnings are logged by the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from marketplace_config.schema import MarketplaceConfig

KNOWN_PAYMENT_METHODS = frozenset({"boleto", "pix", "credit_card"})
NAIVE_DATETIME_POLICIES = frozenset({"assume_utc", "reject"})


@dataclass
class ConfigValidationResult:
    """``is_valid`` is True only when ``errors`` is empty."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: MarketplaceConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()

    rate = config.settlement.platform_fee_rate
    if not (Decimal("0") <= rate < Decimal("1")):
        result.add_error(
            f"settlement.platform_fee_rate must be in [0, 1), got {rate}"
        )
    elif rate == 0:
        result.add_warning("settlement.platform_fee_rate is 0: the platform keeps nothing")

    places = config.settlement.money_decimal_places
    if not 0 <= places <= 9:
        result.add_error(
            f"settlement.money_decimal_places must be between 0 and 9, got {places}"
        )

    policy = config.scheduling.naive_datetime_policy
    if policy not in NAIVE_DATETIME_POLICIES:
        result.add_error(
            f"scheduling.naive_datetime_policy must be one of "
            f"{sorted(NAIVE_DATETIME_POLICIES)}, got {policy!r}"
        )

    methods = config.payments.methods
    if not methods:
        result.add_error("payments.methods must list at least one method")
    unknown = sorted(set(methods) - KNOWN_PAYMENT_METHODS)
    if unknown:
        result.add_error(f"payments.methods has unknown methods: {unknown}")
    if len(set(methods)) != len(methods):
        result.add_warning("payments.methods lists a method more than once")

    if config.verification.resend_interval_seconds <= 0:
        result.add_error("verification.resend_interval_seconds must be positive")
    if config.verification.max_resends_per_window < 1:
        result.add_error("verification.max_resends_per_window must be at least 1")

    return result
