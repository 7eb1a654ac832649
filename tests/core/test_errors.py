"""Tests for fixity_spine.core.errors."""

import pytest

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
    StreamProtocolError,
    categorize_error,
    is_retryable,
)


class TestErrorContext:
    def test_empty_context_serializes_to_nothing(self):
        assert ErrorContext().to_dict() == {}

    def test_known_fields_and_metadata(self):
        ctx = ErrorContext(pool="silos.example.org", http_status=503, metadata={"attempt": 2})
        assert ctx.to_dict() == {"pool": "silos.example.org", "http_status": 503, "attempt": 2}


class TestFixityError:
    def test_defaults(self):
        error = FixityError("boom")
        assert error.message == "boom"
        assert error.category is ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.cause is None

    def test_cause_is_chained(self):
        cause = ConnectionError("DNS failure")
        error = SourceUnavailableError("Failed to reach pool", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "DNS failure"

    def test_with_context_sets_fields_and_metadata(self):
        error = SourceError("bad feed").with_context(pool="silos.example.org", line=12)
        assert error.context.pool == "silos.example.org"
        assert error.context.metadata == {"line": 12}

    def test_with_context_returns_same_error(self):
        error = ParseError("bad row")
        assert error.with_context(url="http://x") is error

    def test_to_dict(self):
        error = DatabaseError("query failed").with_context(stream="<DaitssPackageStream>")
        assert error.to_dict() == {
            "error_type": "DatabaseError",
            "message": "query failed",
            "category": "DATABASE",
            "retryable": False,
            "context": {"stream": "<DaitssPackageStream>"},
        }

    def test_explicit_category_and_retryable_override_defaults(self):
        error = SourceError("x", category=ErrorCategory.NETWORK, retryable=True)
        assert error.category is ErrorCategory.NETWORK
        assert error.retryable is True

    def test_repr(self):
        assert repr(ConfigError("no pools")) == "ConfigError('no pools', category=CONFIG)"


class TestHierarchy:
    @pytest.mark.parametrize(
        "error, category, retryable",
        [
            (ConfigError("x"), ErrorCategory.CONFIG, False),
            (MissingConfigError("server_location"), ErrorCategory.CONFIG, False),
            (InvalidConfigError("required_copies", 0), ErrorCategory.CONFIG, False),
            (SourceError("x"), ErrorCategory.SOURCE, False),
            (SourceUnavailableError("x"), ErrorCategory.NETWORK, True),
            (ParseError("x"), ErrorCategory.PARSE, False),
            (StreamProtocolError("x"), ErrorCategory.STREAM, False),
            (StreamClosedError("x"), ErrorCategory.STREAM, False),
            (DatabaseError("x"), ErrorCategory.DATABASE, False),
            (AnalyzerError("x"), ErrorCategory.ANALYZER, False),
        ],
    )
    def test_category_and_retryable(self, error, category, retryable):
        assert isinstance(error, FixityError)
        assert error.category is category
        assert error.retryable is retryable

    def test_parse_error_is_a_source_error(self):
        assert isinstance(ParseError("x"), SourceError)

    def test_missing_config_message(self):
        error = MissingConfigError("daitss_db_url")
        assert error.key == "daitss_db_url"
        assert "daitss_db_url" in error.message

    def test_invalid_config_message(self):
        error = InvalidConfigError("required_copies", 0)
        assert error.value == 0
        assert error.message == "Invalid configuration for required_copies: 0"


class TestHelpers:
    def test_is_retryable(self):
        assert is_retryable(SourceUnavailableError("x"))
        assert not is_retryable(ConfigError("x"))
        assert is_retryable(TimeoutError())
        assert not is_retryable(RuntimeError())

    def test_categorize_error(self):
        assert categorize_error(ParseError("x")) is ErrorCategory.PARSE
        assert categorize_error(ConnectionError()) is ErrorCategory.NETWORK
        assert categorize_error(ValueError()) is ErrorCategory.PARSE
        assert categorize_error(KeyError()) is ErrorCategory.UNKNOWN
