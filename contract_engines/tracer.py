"""
contract_engines.tracer -- Engine invocation tracer emitting CONTRACT_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging: engine name, engine
    version, the planned action and its duration.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Does NOT introduce I/O into engines; emits a log record only.
    Uses its own logger namespace (``contract_kernel.engines.tracer``) so
    that it is handled by the kernel's logging configuration without
    importing it.

Usage:
    from contract_engines.tracer import traced_engine

    @traced_engine("workflow_planner", "1.0")
    def plan_approve(contract, steps, definition, actor, notes, now):
        ...
"""

from __future__ import annotations

import functools
import logging
import time
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger("contract_kernel.engines.tracer")


def traced_engine(engine_name: str, engine_version: str) -> Callable:
    """Decorator that emits CONTRACT_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "workflow_planner").
        engine_version: Engine version (e.g., "1.0").
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.debug(
                "CONTRACT_ENGINE_TRACE",
                extra={
                    "trace_type": "CONTRACT_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "function": func.__qualname__,
                    "planned_action": getattr(getattr(result, "action", None), "value", None),
                    "duration_ms": duration_ms,
                },
            )
            return result

        return wrapper

    return decorator
