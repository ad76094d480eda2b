"""
marketplace_config -- single public entrypoint for marketplace configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``MarketplaceConfig`` (or values from it) by constructor injection and
    never read configuration files themselves.

Architecture position:
    Configuration -- sits beside ``marketplace_kernel``.  The kernel MUST
    NEVER import from ``marketplace_config``; ``marketplace_services`` wires
    config values into kernel services.

Invariants enforced:
    - Single entrypoint: all runtime config flows through ``get_active_config()``.
    - Validation: a configuration with errors is never returned.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``ValueError`` -- parse or validation failures.

Audit relevance:
    Every successful call emits a ``MARKETPLACE_CONFIG_TRACE`` log entry with
    the config id, version and checksum, tying fee calculations back to the
    exact configuration that produced them.
"""

from __future__ import annotations

from pathlib import Path

from marketplace_config.loader import load_config_file
from marketplace_config.schema import MarketplaceConfig
from marketplace_config.validator import validate_configuration
from marketplace_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> MarketplaceConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a configuration YAML file.
            Defaults to marketplace_config/sets/default.yaml.

    Returns:
        A validated, frozen MarketplaceConfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the configuration fails validation.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning(
            "config_validation_warning",
            extra={"config_id": config.config_id, "warning": warning},
        )

    _logger.info(
        "MARKETPLACE_CONFIG_TRACE",
        extra={
            "trace_type": "MARKETPLACE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(path),
        },
    )
    return config


__all__ = ["MarketplaceConfig", "get_active_config"]
