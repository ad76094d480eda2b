"""
Error translation for outer surfaces.

``to_error_response`` maps any exception to ``(http_status, body)``.
Kernel errors keep their code, message and structured attributes;
anything else becomes a generic 500 so internal detail never leaks.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from marketplace_kernel.exceptions import MarketplaceError
from marketplace_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.errors")

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


def _detail_value(value: Any) -> Any:
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (tuple, list)):
        return [_detail_value(v) for v in value]
    return value


def error_details(exc: MarketplaceError) -> dict[str, Any]:
    """Public structured attributes of a kernel error."""
    return {
        key: _detail_value(value)
        for key, value in vars(exc).items()
        if not key.startswith("_")
    }


def to_error_response(exc: BaseException) -> tuple[int, dict[str, Any]]:
    if isinstance(exc, MarketplaceError):
        return exc.http_status, {
            "error": {
                "code": exc.code,
                "message": str(exc),
                "details": error_details(exc),
            }
        }

    logger.error(
        "unhandled_error",
        extra={"error_type": type(exc).__name__, **LogContext.get_all()},
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return 500, {
        "error": {
            "code": INTERNAL_ERROR_CODE,
            "message": INTERNAL_ERROR_MESSAGE,
        }
    }
