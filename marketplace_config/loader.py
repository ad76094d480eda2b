"""
Configuration Loader (``marketplace_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen
``marketplace_config.schema`` dataclasses.  Runtime callers go through
``marketplace_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Monetary rates are parsed to ``Decimal`` through ``str`` so a YAML float
  never leaks binary rounding into fee calculations.
* ``compute_checksum`` is a deterministic SHA-256 of the parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unparseable numbers  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from marketplace_config.schema import (
    MarketplaceConfig,
    PaymentsConfig,
    SchedulingConfig,
    SettlementConfig,
    VerificationConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{field}: cannot parse decimal from {value!r}") from exc


def compute_checksum(data: dict[str, Any]) -> str:
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_settlement(data: dict[str, Any]) -> SettlementConfig:
    return SettlementConfig(
        platform_fee_rate=parse_decimal(
            data.get("platform_fee_rate", "0.05"), "settlement.platform_fee_rate"
        ),
        money_decimal_places=int(data.get("money_decimal_places", 2)),
    )


def parse_scheduling(data: dict[str, Any]) -> SchedulingConfig:
    return SchedulingConfig(
        naive_datetime_policy=str(data.get("naive_datetime_policy", "assume_utc")),
    )


def parse_payments(data: dict[str, Any]) -> PaymentsConfig:
    methods = data.get("methods", ["boleto", "pix", "credit_card"])
    return PaymentsConfig(methods=tuple(str(m) for m in methods))


def parse_verification(data: dict[str, Any]) -> VerificationConfig:
    return VerificationConfig(
        resend_interval_seconds=int(data.get("resend_interval_seconds", 120)),
        max_resends_per_window=int(data.get("max_resends_per_window", 1)),
    )


def parse_config(data: dict[str, Any]) -> MarketplaceConfig:
    """
    Parse a configuration document.

    ``config_id`` and ``version`` are required; every section falls back to
    the schema defaults when absent.
    """
    return MarketplaceConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        settlement=parse_settlement(data.get("settlement") or {}),
        scheduling=parse_scheduling(data.get("scheduling") or {}),
        payments=parse_payments(data.get("payments") or {}),
        verification=parse_verification(data.get("verification") or {}),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> MarketplaceConfig:
    return parse_config(load_yaml_file(path))
