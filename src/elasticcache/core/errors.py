"""
Structured error types for the elasticcache backend.

Provides a small hierarchy of typed errors with metadata for retry
decisions, categorization and logging. Every error raised by the backend,
the store adapters and the configuration layer extends ``ElasticCacheError``.

Manifesto:
    A cache backend has exactly one "expected" failure: the entry is not
    there. Everything else (the cluster is down, a request timed out, the
    index configuration is broken) must surface as a hard error instead of
    being folded into a cache miss.

    - **Narrow miss type:** EntryNotFoundError is the only error converted
      into ``None`` / ``False`` by the backend
    - **Explicit retry semantics:** StoreUnavailableError is retryable,
      configuration and validation errors never are
    - **Rich context:** index, identifier and tag travel with the error
    - **Error chaining:** the elasticsearch-py exception is kept as cause

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                     ElasticCacheError                         │
        │   (category, retryable, retry_after, context, cause)         │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  EntryNotFoundError     StoreUnavailableError                 │
        │  (STORAGE)              (NETWORK, retryable)                  │
        │                              │                                │
        │                         StoreTimeoutError                     │
        │                                                               │
        │  InitializationError    ConfigurationError   ValidationError  │
        │  (STORAGE)              (CONFIG)             (VALIDATION)     │
        │                              │                                │
        │                   MissingConfigError                          │
        │                   InvalidConfigError                          │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = StoreUnavailableError("cluster unreachable")
    >>> error.retryable
    True
    >>> error.with_context(index="t3cache").context.index
    't3cache'

Guardrails:
    ❌ DON'T: Catch ElasticCacheError to implement a cache miss
    ✅ DO: Catch EntryNotFoundError only

    ❌ DON'T: Swallow the elasticsearch-py exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, retry-logic, elasticcache
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NETWORK: Connection, timeout, transport errors
        STORAGE: Index or document level failures
        VALIDATION: Invalid operation arguments
        CONFIG: Missing or invalid settings, unreadable index configuration
        INTERNAL: Bugs, unexpected state
        UNKNOWN: Uncategorized errors
    """

    NETWORK = "NETWORK"
    STORAGE = "STORAGE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Typed fields cover what the backend knows when something fails; anything
    else goes into ``metadata``. ``to_dict()`` serializes the non-None fields
    for structured logging.

    Examples:
        >>> ctx = ErrorContext(index="t3cache", identifier="page_42")
        >>> ctx.to_dict()
        {'index': 't3cache', 'identifier': 'page_42'}

    Attributes:
        index: Name of the Elasticsearch index
        identifier: Cache entry identifier (document id)
        tag: Tag the operation was scoped to
        operation: Backend operation name (``get``, ``flush_by_tag`` ...)
        url: Cluster URL that was being accessed
        http_status: HTTP status code if applicable
        metadata: Additional key-value pairs
    """

    index: str | None = None
    identifier: str | None = None
    tag: str | None = None
    operation: str | None = None
    url: str | None = None
    http_status: int | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["index", "identifier", "tag", "operation", "url", "http_status"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ElasticCacheError(Exception):
    """
    Base exception for all elasticcache errors.

    Every instance carries:
    - **category:** ErrorCategory enum for classification
    - **retryable:** Whether the operation can be retried as is
    - **retry_after:** Optional seconds to wait before retry
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category`` and ``default_retryable``.

    Examples:
        >>> error = ElasticCacheError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["retryable"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        retry_after: int | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.retry_after = retry_after
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ElasticCacheError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StoreUnavailableError("delete failed").with_context(
                index="t3cache",
                tag="pageId_42",
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
        if self.retry_after is not None:
            result["retry_after"] = self.retry_after
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STORE ERRORS
# =============================================================================


class EntryNotFoundError(ElasticCacheError):
    """
    The requested identifier has no document.

    Raised by document stores; the backend converts it into a cache miss and
    never lets it reach the caller.
    """

    default_category = ErrorCategory.STORAGE
    default_retryable = False

    def __init__(self, identifier: str, message: str | None = None, **kwargs: Any):
        self.identifier = identifier
        super().__init__(message or f"Cache entry not found: {identifier}", **kwargs)
        self.context.identifier = identifier


class StoreUnavailableError(ElasticCacheError):
    """
    Transport failure, timeout, or any store error other than a missing entry.

    Retryable by default; the retry policy itself belongs to the transport.
    """

    default_category = ErrorCategory.NETWORK
    default_retryable = True


class StoreTimeoutError(StoreUnavailableError):
    """A request to the store did not complete within its timeout."""

    pass


# =============================================================================
# LIFECYCLE / CONFIGURATION ERRORS
# =============================================================================


class InitializationError(ElasticCacheError):
    """
    The backing index could not be created or did not become ready in time.

    Raised from the backend constructor so an unusable backend is never handed
    out.
    """

    default_category = ErrorCategory.STORAGE
    default_retryable = False


class ConfigurationError(ElasticCacheError):
    """
    Configuration error.

    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class MissingConfigError(ConfigurationError):
    """Required configuration is missing (e.g. index configuration file)."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None, **kwargs: Any):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}", **kwargs)


class ValidationError(ElasticCacheError):
    """
    Invalid arguments for a cache operation.

    Never retryable - the call must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, ElasticCacheError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, ElasticCacheError):
        return error.category
    if isinstance(error, (ConnectionError, TimeoutError)):
        return ErrorCategory.NETWORK
    if isinstance(error, (TypeError, ValueError)):
        return ErrorCategory.VALIDATION
    return ErrorCategory.UNKNOWN


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ElasticCacheError",
    "EntryNotFoundError",
    "StoreUnavailableError",
    "StoreTimeoutError",
    "InitializationError",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "ValidationError",
    "is_retryable",
    "categorize_error",
]
