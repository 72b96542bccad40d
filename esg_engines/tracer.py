"""
esg_engines.tracer -- ESG_ENGINE_TRACE records for pure engine calls.

Responsibility:
    ``@traced_engine`` logs, after each call, which engine ran, its
    version, how long it took and a short fingerprint of the inputs it was
    given.  Two rollovers that saw the same sections and mappings share a
    fingerprint, which makes a reconciliation reproducible from the logs.

Architecture position:
    Engines -- logging only.  The logger lives under ``esg_kernel`` so the
    kernel's structured formatter renders it, but nothing from the kernel
    is imported.

Invariants enforced:
    - The fingerprint is the first 16 hex chars of a SHA-256 over the
      selected keyword arguments, rendered with sorted dict keys.
    - The wrapped function's arguments and result pass through untouched.

Usage:
    @traced_engine("catalog_mapper", "1.0", fingerprint_fields=("sources",))
    def map_sections(self, *, sources, target_sections, manual_mappings):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any

_logger = logging.getLogger("esg_kernel.engines.tracer")

FINGERPRINT_LENGTH = 16


def _render(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Mapping):
        pairs = sorted((str(k), _render(v)) for k, v in value.items())
        return "{" + ",".join(f"{k}:{v}" for k, v in pairs) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(map(_render, value)) + "]"
    # Frozen dataclasses have a stable repr
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """Fingerprint of ``kwargs`` restricted to ``fingerprint_fields``; absent ones count as null."""
    rendered = "|".join(f"{name}={_render(kwargs.get(name))}" for name in fingerprint_fields)
    return hashlib.sha256(rendered.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Wrap an engine entry point so each call logs an ESG_ENGINE_TRACE record."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.monotonic()
            result = func(*args, **kwargs)
            _logger.info(
                "ESG_ENGINE_TRACE",
                extra={
                    "trace_type": "ESG_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "input_fingerprint": (
                        compute_input_fingerprint(fingerprint_fields, kwargs)
                        if fingerprint_fields
                        else ""
                    ),
                    "duration_ms": round((time.monotonic() - started) * 1000, 2),
                },
            )
            return result

        return wrapper

    return decorator
