"""elasticcache core -- cache semantics on top of an Elasticsearch index.

Architecture::

    Layer 1 -- Types & Errors
        errors.py        Structured error hierarchy (ElasticCacheError ...)
        expiry.py        Expiration rules shared by reads and the garbage sweep
        entry.py         CacheEntry and its document layout

    Layer 2 -- Store
        queries.py       Query DSL builders (match_all, tag, expiry range)
        store.py         DocumentStore protocol, Elasticsearch + in-memory stores
        index_config.py  YAML index configuration, index body assembly

    Layer 3 -- Backend
        cache.py         TaggableCacheBackend protocol, ElasticsearchBackend
        factory.py       Settings → store → backend

    Ambient
        settings.py      pydantic-settings configuration (ELASTICCACHE_*)
        logging.py       structlog configuration
"""

from elasticcache.core.cache import ElasticsearchBackend, TaggableCacheBackend
from elasticcache.core.entry import CacheEntry
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
)
from elasticcache.core.factory import create_backend, create_store
from elasticcache.core.settings import ElasticCacheSettings, get_settings
from elasticcache.core.store import DocumentStore, ElasticsearchDocumentStore, InMemoryDocumentStore

__all__ = [
    "CacheEntry",
    "ConfigurationError",
    "DocumentStore",
    "ElasticCacheError",
    "ElasticCacheSettings",
    "ElasticsearchBackend",
    "ElasticsearchDocumentStore",
    "EntryNotFoundError",
    "ErrorCategory",
    "ErrorContext",
    "InMemoryDocumentStore",
    "InitializationError",
    "InvalidConfigError",
    "MissingConfigError",
    "StoreTimeoutError",
    "StoreUnavailableError",
    "TaggableCacheBackend",
    "ValidationError",
    "create_backend",
    "create_store",
    "get_settings",
]
