"""Core primitives -- errors, structured logging, settings and timestamps.

Architecture::

    errors.py        Structured error hierarchy (FixityError, ErrorCategory)
    logging.py       structlog configuration, LogContext, log_step timing
    settings.py      FixitySettings (pydantic-settings, FIXITY_ env prefix)
    timestamps.py    UTC "Z" string helpers and ULID run ids (stdlib-only)
    formatting.py    commify / pluralize helpers for report lines
"""

from fixity_spine.core.errors import (
    AnalyzerError,
    ConfigError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    FixityError,
    InvalidConfigError,
    MissingConfigError,
    ParseError,
    SourceError,
    SourceUnavailableError,
    StreamClosedError,
    StreamError,
    StreamProtocolError,
)
from fixity_spine.core.logging import LogContext, configure_logging, get_logger, log_step
from fixity_spine.core.settings import FixitySettings

__all__ = [
    # Errors
    "ErrorCategory",
    "ErrorContext",
    "FixityError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "SourceError",
    "SourceUnavailableError",
    "ParseError",
    "StreamError",
    "StreamProtocolError",
    "StreamClosedError",
    "DatabaseError",
    "AnalyzerError",
    # Logging
    "configure_logging",
    "get_logger",
    "LogContext",
    "log_step",
    # Settings
    "FixitySettings",
]
