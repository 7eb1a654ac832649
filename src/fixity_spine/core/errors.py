"""
Structured error types for fixity-spine.

Provides a small hierarchy of typed errors carrying metadata for retry
decisions, error categorization and root cause analysis through chaining.

Only I/O and configuration faults are errors here. Inconsistencies that the
analyzers discover (missing copies, orphans, checksum mismatches, expired
fixities) are the intended output of a run and are surfaced as report lines
and audit events, never as exceptions.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                        FixityError                           │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  ConfigError          SourceError          StreamError       │
        │  (CONFIG)             (SOURCE)             (STREAM)          │
        │     │                    │                    │              │
        │  MissingConfigError   SourceUnavailable    StreamProtocol    │
        │  InvalidConfigError   ParseError           StreamClosed      │
        │                                                              │
        │  DatabaseError        AnalyzerError                          │
        │  (DATABASE)           (ANALYZER)                             │
        └─────────────────────────────────────────────────────────────┘

Examples:
    >>> error = SourceUnavailableError("pool did not answer")
    >>> error.retryable
    True
    >>> error.with_context(pool="silos.example.org").context.pool
    'silos.example.org'

    Chaining the original exception:

    >>> try:
    ...     raise ConnectionError("DNS failure")
    ... except ConnectionError as e:
    ...     raise SourceUnavailableError("Failed to reach pool", cause=e)
    Traceback (most recent call last):
    ...
    SourceUnavailableError: Failed to reach pool

Guardrails:
    ❌ DON'T: Raise for data inconsistencies found by an analyzer
    ✅ DO: Report them through a Reporter and record an event

    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= for error chaining
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection, timeout, DNS errors talking to a pool
        DATABASE: Query or transaction failures
        SOURCE: Upstream pool or feed errors
        PARSE: Malformed feed or service documents
        CONFIG: Missing or invalid settings
        STREAM: Sorted-sequence protocol violations (programmer errors)
        ANALYZER: Analyzer lifecycle misuse
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NETWORK = "NETWORK"
    DATABASE = "DATABASE"
    SOURCE = "SOURCE"
    PARSE = "PARSE"
    CONFIG = "CONFIG"
    STREAM = "STREAM"
    ANALYZER = "ANALYZER"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields for the metadata that matters when a fixity run fails;
    anything else lands in ``metadata``.

    Attributes:
        analyzer: Name of the analyzer that was running
        stream: Diagnostic description of the stream involved
        pool: Pool name (usually the pool's host)
        url: URL that was being accessed
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    analyzer: str | None = None
    stream: str | None = None
    pool: str | None = None
    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["analyzer", "stream", "pool", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class FixityError(Exception):
    """
    Base exception for all fixity-spine errors.

    Subclasses set ``default_category`` and ``default_retryable`` so callers
    rarely need to pass them explicitly.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> FixityError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SourceError("Bad feed").with_context(
                pool="silos.example.org",
                url="http://silos.example.org/fixity.csv",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(FixityError):
    """
    Configuration error.

    Never retryable - configuration must be fixed. Fatal to a run.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(FixityError):
    """Error from a pool or other upstream feed."""

    default_category = ErrorCategory.SOURCE
    default_retryable = False


class SourceUnavailableError(SourceError):
    """Pool or feed could not be reached."""

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class ParseError(SourceError):
    """Error parsing a feed or a service document."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# STREAM ERRORS
# =============================================================================


class StreamError(FixityError):
    """Sorted-sequence misuse; always a programmer error."""

    default_category = ErrorCategory.STREAM
    default_retryable = False


class StreamProtocolError(StreamError):
    """A stream was used out of protocol, e.g. two consecutive ungets."""

    pass


class StreamClosedError(StreamError):
    """A closed stream was rewound or read."""

    pass


# =============================================================================
# DATABASE / ANALYZER ERRORS
# =============================================================================


class DatabaseError(FixityError):
    """Database query or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class AnalyzerError(FixityError):
    """Analyzer lifecycle misuse, e.g. running an analyzer twice."""

    default_category = ErrorCategory.ANALYZER
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, FixityError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, FixityError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, ValueError):
        return ErrorCategory.PARSE
    return ErrorCategory.UNKNOWN


__all__ = [
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
    "is_retryable",
    "categorize_error",
]
