"""
marketplace_engines.tracer -- ``@traced_engine`` for the pure engines.

Every call of a decorated engine emits one DEBUG ``ENGINE_TRACE`` record
naming the engine and its version, a short fingerprint of the chosen
keyword inputs, and the elapsed time.  A pricing or settlement figure in
the logs can then be tied back to the exact inputs that produced it.

The wrapper adds logging only; engines stay free of I/O, and exceptions
raised by the engine pass through untouched.
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import Any

from marketplace_kernel.logging_config import get_logger
from marketplace_kernel.utils.hashing import short_fingerprint

_logger = get_logger("engines.tracer")


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """Fingerprint of the named keyword inputs; absent inputs count as null."""
    return short_fingerprint({name: kwargs.get(name) for name in fingerprint_fields})


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = round((time.perf_counter() - started) * 1000, 3)

            if _logger.isEnabledFor(logging.DEBUG):
                _logger.debug(
                    "ENGINE_TRACE",
                    extra={
                        "trace_type": "ENGINE_TRACE",
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": (
                            compute_input_fingerprint(fingerprint_fields, kwargs)
                            if fingerprint_fields else ""
                        ),
                        "duration_ms": elapsed_ms,
                        "function": func.__qualname__,
                    },
                )
            return result

        return wrapper

    return decorator
