"""Tests for the elasticcache error hierarchy."""

import pytest

from elasticcache.core.errors import (
    ConfigurationError,
    ElasticCacheError,
    EntryNotFoundError,
    ErrorCategory,
    ErrorContext,
    InitializationError,
    InvalidConfigError,
    MissingConfigError,
    StoreTimeoutError,
    StoreUnavailableError,
    ValidationError,
    categorize_error,
    is_retryable,
)


class TestHierarchy:
    @pytest.mark.parametrize(
        "error",
        [
            EntryNotFoundError("id"),
            StoreUnavailableError("down"),
            StoreTimeoutError("slow"),
            InitializationError("no index"),
            MissingConfigError("index_configuration"),
            InvalidConfigError("port", -1),
            ValidationError("bad"),
        ],
    )
    def test_all_derive_from_base(self, error):
        assert isinstance(error, ElasticCacheError)

    def test_timeout_is_unavailable(self):
        assert issubclass(StoreTimeoutError, StoreUnavailableError)

    def test_config_errors(self):
        assert issubclass(MissingConfigError, ConfigurationError)
        assert issubclass(InvalidConfigError, ConfigurationError)


class TestDefaults:
    def test_unavailable_is_retryable_network(self):
        error = StoreUnavailableError("down")
        assert error.category == ErrorCategory.NETWORK
        assert error.retryable is True

    def test_not_found(self):
        error = EntryNotFoundError("page_1")
        assert error.category == ErrorCategory.STORAGE
        assert error.retryable is False
        assert error.context.identifier == "page_1"
        assert "page_1" in error.message

    def test_validation(self):
        error = ValidationError("lifetime must be >= 0", field="lifetime", value=-1)
        assert error.category == ErrorCategory.VALIDATION
        assert error.to_dict()["field"] == "lifetime"
        assert error.to_dict()["value"] == "-1"

    def test_missing_config_message(self):
        assert "index_configuration" in MissingConfigError("index_configuration").message


class TestContext:
    def test_with_context_sets_known_and_extra_fields(self):
        error = StoreUnavailableError("down").with_context(index="t3cache", node="es-1")
        assert error.context.index == "t3cache"
        assert error.context.metadata == {"node": "es-1"}

    def test_to_dict(self):
        cause = OSError("connection refused")
        error = StoreUnavailableError(
            "down",
            context=ErrorContext(index="t3cache", operation="get_document", http_status=503),
            cause=cause,
        )
        data = error.to_dict()
        assert data["error_type"] == "StoreUnavailableError"
        assert data["category"] == "NETWORK"
        assert data["retryable"] is True
        assert data["context"]["index"] == "t3cache"
        assert data["context"]["http_status"] == 503
        assert data["cause"] == "connection refused"
        assert error.__cause__ is cause

    def test_repr(self):
        assert repr(InitializationError("x")) == "InitializationError('x', category=STORAGE)"


class TestHelpers:
    def test_is_retryable(self):
        assert is_retryable(StoreTimeoutError("slow"))
        assert not is_retryable(ValidationError("bad"))
        assert is_retryable(ConnectionError())
        assert not is_retryable(RuntimeError())

    def test_categorize_error(self):
        assert categorize_error(MissingConfigError("x")) == ErrorCategory.CONFIG
        assert categorize_error(TimeoutError()) == ErrorCategory.NETWORK
        assert categorize_error(ValueError()) == ErrorCategory.VALIDATION
        assert categorize_error(RuntimeError()) == ErrorCategory.UNKNOWN
