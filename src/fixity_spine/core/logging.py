"""
Structured logging for fixity runs.

Configuration Flow:
    ::

        configure_logging(level="INFO", json_format=None, service="fixity-spine")

            ↓
        structlog processor chain:
          1. merge_contextvars (analyzer, run_id, ...)
          2. TimeStamper (ISO)
          3. add_log_level / add_logger_name
          4. service metadata
          5. JSONRenderer (not a tty) or ConsoleRenderer (tty)

Usage:
    >>> from fixity_spine.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True)
    >>> log = get_logger(__name__)
    >>> log.info("pool_stream.fetched", pool="silos.example.org", bytes=8192)

    Timing a block:

    >>> with log_step("analyzer.run", analyzer="inter_pool") as timer:
    ...     analyzer.run()
    ...     timer.add_metric("reports", len(analyzer.reports))

Guardrails:
    - Call configure_logging() once, at process start (CLI entry)
    - Report lines are logged by the Reporter; don't double-log them
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "fixity-spine"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def _elasticsearch_compatible(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Make field names ECS compatible."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "fixity-spine",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    if json_format is None:
        json_format = not sys.stderr.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(_elasticsearch_compatible)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # Reports go to stdout, so logs stay on stderr.
    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper()),
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(analyzer="pool_vs_daitss", run_id="abc123"):
            log.info("analyzer.started")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


# =============================================================================
# TIMING
# =============================================================================


@dataclass
class TimingResult:
    """Result of a timed block."""

    step: str
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None
    metrics: dict[str, Any] = field(default_factory=dict)

    def stop(self) -> TimingResult:
        self.ended_at = time.perf_counter()
        return self

    @property
    def duration_ms(self) -> float:
        end = self.ended_at if self.ended_at is not None else time.perf_counter()
        return (end - self.started_at) * 1000

    def add_metric(self, key: str, value: Any) -> TimingResult:
        """Add a metric to include in the log output."""
        self.metrics[key] = value
        return self

    def to_log_dict(self) -> dict[str, Any]:
        result = {"duration_ms": round(self.duration_ms, 2), "span_id": self.span_id}
        result.update(self.metrics)
        return result


@contextmanager
def log_step(event: str, level: str = "info", **extra_metrics: Any) -> Iterator[TimingResult]:
    """
    Log a block's start (DEBUG) and end (``level``) with its duration.

    On an exception, logs ``<event>.error`` with the timing and re-raises.
    """
    log = get_logger("timing")
    timer = TimingResult(step=event, metrics=dict(extra_metrics))
    log.debug(f"{event}.start", span_id=timer.span_id, **extra_metrics)

    try:
        yield timer
    except Exception as e:
        timer.stop()
        log.error(
            f"{event}.error",
            error_type=type(e).__name__,
            error_message=str(e),
            **timer.to_log_dict(),
        )
        raise

    timer.stop()
    getattr(log, level)(f"{event}.end", **timer.to_log_dict())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    "TimingResult",
    "log_step",
]
