"""
Configuration schema (``marketplace_config.schema``).

Frozen dataclasses describing one configuration set.  Instances are only
produced by ``marketplace_config.loader`` and handed out by
``marketplace_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class SettlementConfig:
    platform_fee_rate: Decimal = Decimal("0.05")
    money_decimal_places: int = 2


@dataclass(frozen=True)
class SchedulingConfig:
    naive_datetime_policy: str = "assume_utc"


@dataclass(frozen=True)
class PaymentsConfig:
    methods: tuple[str, ...] = ("boleto", "pix", "credit_card")


@dataclass(frozen=True)
class VerificationConfig:
    resend_interval_seconds: int = 120
    max_resends_per_window: int = 1


@dataclass(frozen=True)
class MarketplaceConfig:
    """
    The complete runtime configuration.

    ``checksum`` identifies the source document; two configs with the same
    checksum were loaded from identical YAML content.
    """

    config_id: str
    version: int
    settlement: SettlementConfig
    scheduling: SchedulingConfig
    payments: PaymentsConfig
    verification: VerificationConfig
    checksum: str = ""
