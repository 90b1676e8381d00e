"""
Factory functions that build the backend from settings.

    - ``create_store()``   — ElasticsearchDocumentStore for the configured cluster
    - ``create_backend()`` — index configuration + store → ElasticsearchBackend
"""

from __future__ import annotations

import time
from collections.abc import Callable

from elasticcache.core.cache import ElasticsearchBackend
from elasticcache.core.index_config import load_index_configuration
from elasticcache.core.settings import ElasticCacheSettings, get_settings
from elasticcache.core.store import DocumentStore, ElasticsearchDocumentStore


def create_store(settings: ElasticCacheSettings) -> ElasticsearchDocumentStore:
    """Create a document store connected to the cluster in *settings*."""
    return ElasticsearchDocumentStore.from_settings(settings)


def create_backend(
    settings: ElasticCacheSettings | None = None,
    *,
    store: DocumentStore | None = None,
    index_name: str | None = None,
    clock: Callable[[], float] = time.time,
) -> ElasticsearchBackend:
    """Build a ready-to-use backend.

    The index configuration file is parsed before any connection is made, so
    a broken file fails with ``ConfigurationError`` without touching the
    cluster.

    Args:
        settings: Defaults to :func:`get_settings`.
        store: Use this store instead of connecting to Elasticsearch.
        index_name: Override ``settings.index_name``.
        clock: Time source in epoch seconds.
    """
    settings = settings or get_settings()
    configuration = load_index_configuration(settings.index_configuration)
    owned = store is None
    if store is None:
        store = create_store(settings)
    try:
        return ElasticsearchBackend(
            store,
            index_name=index_name or settings.index_name,
            index_configuration=configuration,
            default_lifetime=settings.default_lifetime,
            ready_timeout=settings.ready_timeout,
            ready_poll_interval=settings.ready_poll_interval,
            scroll_size=settings.scroll_size,
            clock=clock,
        )
    except Exception:
        if owned:
            store.close()
        raise


__all__ = ["create_store", "create_backend"]
