"""
Tag-indexed, TTL-aware cache backend on top of an Elasticsearch index.

Provides the ``TaggableCacheBackend`` protocol the cache frontend programs
against and ``ElasticsearchBackend``, which maps each cache operation onto
document-store calls: one document per cache key, tags as a keyword array,
expiry as an absolute ``expiresAt`` field evaluated at read time.

Manifesto:
    Elasticsearch was not designed as a key/value store. It has no TTL,
    indexes asynchronously and deletes in bulk by query. The backend keeps
    cache semantics honest on top of that:

    - **Expiry as a predicate:** ``get``/``has`` hide expired entries,
      ``collect_garbage`` removes them; nothing else deletes implicitly
    - **Misses are not failures:** only a missing document is a miss,
      every other store error propagates
    - **Fail at construction:** an index that cannot be created or does not
      become ready stops the backend from being handed out
    - **No illusory locking:** atomicity is whatever the store provides

Architecture:
    ::

        cache frontend
              │
              ▼
        ElasticsearchBackend ──► DocumentStore ──► Elasticsearch
          set                     upsert_document
          get / has               get_document
          remove                  get_document + delete_document
          flush                   delete_by_query(match_all)
          flush_by_tag            delete_by_query(term tags)
          collect_garbage         delete_by_query(range 1..now on expiresAt)
          find_identifiers_by_tag search_ids(term tags) → scroll pages

Consistency:
    Elasticsearch makes writes searchable on refresh, so a ``set`` followed
    immediately by ``find_identifiers_by_tag`` or a bulk delete may not see
    the new document yet. ``get``/``has`` read by id and are real-time.
    Set ``refresh_on_write`` on the store to trade throughput for
    read-after-write visibility. Bulk deletes act on a snapshot and are not
    atomic with concurrent writes.

Examples:
    >>> from elasticcache.core.cache import ElasticsearchBackend
    >>> from elasticcache.core.store import InMemoryDocumentStore
    >>> backend = ElasticsearchBackend(InMemoryDocumentStore(), index_name="pages")
    >>> backend.set("page_42", "<html>…</html>", tags=["pageId_42"], lifetime=0)
    >>> backend.get("page_42")
    '<html>…</html>'
    >>> backend.find_identifiers_by_tag("pageId_42")
    ['page_42']

Guardrails:
    ❌ DON'T: Expect find_identifiers_by_tag to skip expired entries
    ✅ DO: Call has() on the returned identifiers if liveness matters

    ❌ DON'T: Rely on immediate visibility of writes in tag lookups
    ✅ DO: Enable refresh_on_write when the caller needs it

Tags:
    cache, elasticsearch, tags, ttl, garbage-collection, scroll,
    delete-by-query, elasticcache
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Protocol

from elasticcache.core import expiry, queries
from elasticcache.core.entry import CacheEntry, normalize_tags
from elasticcache.core.errors import (
    EntryNotFoundError,
    ErrorContext,
    InitializationError,
    StoreUnavailableError,
    ValidationError,
)
from elasticcache.core.index_config import build_index_body
from elasticcache.core.logging import get_logger
from elasticcache.core.store import DocumentStore

logger = get_logger(__name__)

DEFAULT_INDEX_NAME = "t3cache"
DEFAULT_LIFETIME = 3600


class TaggableCacheBackend(Protocol):
    """Protocol for cache backends that support tags and lifetimes.

    Identifiers and content are strings, lifetimes are seconds with ``0``
    meaning unlimited and ``None`` meaning the backend default.
    """

    def set(
        self,
        identifier: str,
        content: str,
        tags: Iterable[str] = (),
        lifetime: int | None = None,
    ) -> None:
        """Store ``content`` under ``identifier``, replacing any previous entry."""
        ...

    def get(self, identifier: str) -> str | None:
        """Return the content, or ``None`` if missing or expired."""
        ...

    def has(self, identifier: str) -> bool:
        """Return True iff ``get(identifier)`` would return content."""
        ...

    def remove(self, identifier: str) -> bool:
        """Remove a live entry; return False if there was none."""
        ...

    def flush(self) -> None:
        """Remove every entry."""
        ...

    def flush_by_tag(self, tag: str) -> None:
        """Remove every entry tagged ``tag``."""
        ...

    def flush_by_tags(self, tags: Iterable[str]) -> None:
        """Remove every entry carrying any of ``tags``."""
        ...

    def collect_garbage(self) -> None:
        """Physically remove expired entries."""
        ...

    def find_identifiers_by_tag(self, tag: str) -> list[str]:
        """Identifiers of every entry tagged ``tag``, expired or not."""
        ...


def _require_text(value: Any, field: str, *, allow_empty: bool = False) -> str:
    if not isinstance(value, str) or (not allow_empty and value == ""):
        raise ValidationError(
            f"{field} must be a {'string' if allow_empty else 'non-empty string'}",
            field=field,
            value=value,
        )
    return value


def _require_lifetime(value: Any, field: str = "lifetime") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(
            f"{field} must be a non-negative integer number of seconds",
            field=field,
            value=value,
        )
    return value


def _require_page_size(value: Any, field: str = "scroll_size") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field} must be a positive integer", field=field, value=value)
    return value


class ElasticsearchBackend:
    """Cache backend persisting entries as documents of one index.

    Construction resolves the index: if it does not exist it is created from
    ``index_configuration`` (plus the mappings of the fields the backend
    owns) and the constructor blocks until the store reports it ready.

    Attributes:
        default_lifetime: Seconds used when ``set`` gets no lifetime (0 = unlimited).
        scroll_size: Page size for tag lookups.

    Raises:
        InitializationError: The index could not be created, or did not
            become ready within ``ready_timeout`` seconds.

    Example:
        store = ElasticsearchDocumentStore.from_settings(settings)
        backend = ElasticsearchBackend(store, index_name="t3cache", default_lifetime=600)
        backend.set("menu_1", rendered, tags=["pageId_1"])
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        index_name: str = DEFAULT_INDEX_NAME,
        index_configuration: Mapping[str, Any] | None = None,
        default_lifetime: int = DEFAULT_LIFETIME,
        ready_timeout: float = 30.0,
        ready_poll_interval: float = 0.5,
        scroll_size: int = 1000,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._store = store
        self._index = _require_text(index_name, "index_name")
        self._index_configuration = dict(index_configuration or {})
        self.default_lifetime = _require_lifetime(default_lifetime, "default_lifetime")
        self.scroll_size = _require_page_size(scroll_size)
        self._ready_timeout = ready_timeout
        self._ready_poll_interval = ready_poll_interval
        self._clock = clock
        self._sleep = sleep

        self._initialize()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def index(self) -> str:
        return self._index

    @property
    def index_configuration(self) -> dict[str, Any]:
        return dict(self._index_configuration)

    @property
    def store(self) -> DocumentStore:
        return self._store

    def _initialize(self) -> None:
        try:
            if self._store.index_exists(self._index):
                logger.debug("index_found", index=self._index)
                return
            created = self._store.create_index(
                self._index, build_index_body(self._index_configuration)
            )
        except StoreUnavailableError as e:
            raise InitializationError(
                f"Cannot create cache index {self._index!r}: {e.message}",
                cause=e,
                context=ErrorContext(index=self._index, operation="initialize"),
            ) from e

        logger.info(
            "index_created" if created else "index_created_elsewhere",
            index=self._index,
            configured=bool(self._index_configuration),
        )
        self._wait_until_ready()

    def _wait_until_ready(self) -> None:
        deadline = time.monotonic() + self._ready_timeout
        attempts = 0
        while True:
            attempts += 1
            started = time.monotonic()
            remaining = deadline - started
            try:
                if self._store.is_index_ready(
                    self._index, wait=max(0.0, min(self._ready_poll_interval, remaining))
                ):
                    logger.info("index_ready", index=self._index, attempts=attempts)
                    return
            except StoreUnavailableError as e:
                raise InitializationError(
                    f"Readiness check for cache index {self._index!r} failed: {e.message}",
                    cause=e,
                    context=ErrorContext(index=self._index, operation="initialize"),
                ) from e
            if time.monotonic() >= deadline:
                raise InitializationError(
                    f"Cache index {self._index!r} not ready after {self._ready_timeout}s",
                    context=ErrorContext(
                        index=self._index,
                        operation="initialize",
                        metadata={"attempts": attempts},
                    ),
                )
            # a store that blocked on the health call already used up the interval
            pause = self._ready_poll_interval - (time.monotonic() - started)
            if pause > 0:
                self._sleep(pause)

    def close(self) -> None:
        self._store.close()

    def __enter__(self) -> ElasticsearchBackend:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def now(self) -> int:
        """Current time in whole epoch seconds."""
        return int(self._clock())

    # ------------------------------------------------------------------ #
    # Single-entry operations
    # ------------------------------------------------------------------ #

    def set(
        self,
        identifier: str,
        content: str,
        tags: Iterable[str] = (),
        lifetime: int | None = None,
    ) -> None:
        """Store ``content`` under ``identifier``.

        The document is replaced as a whole, so tags of a previous entry
        with the same identifier do not survive.

        Args:
            identifier: Cache entry identifier (document id).
            content: Payload to store.
            tags: Labels for bulk invalidation.
            lifetime: Seconds until expiry; ``0`` = unlimited,
                ``None`` = ``default_lifetime``.

        Raises:
            ValidationError: Invalid arguments.
            StoreUnavailableError: The write failed.
        """
        _require_text(identifier, "identifier")
        _require_text(content, "content", allow_empty=True)
        if isinstance(tags, str):
            raise ValidationError("tags must be an iterable of strings", field="tags", value=tags)
        tags = normalize_tags(_require_text(tag, "tag") for tag in tags)
        if lifetime is None:
            lifetime = self.default_lifetime
        _require_lifetime(lifetime)

        entry = CacheEntry(
            identifier=identifier,
            content=content,
            tags=tags,
            expires_at=expiry.expires_at(lifetime, self.now()),
        )
        self._store.upsert_document(self._index, identifier, entry.to_document())
        logger.debug(
            "cache_entry_set",
            index=self._index,
            identifier=identifier,
            tags=list(tags),
            expires_at=entry.expires_at,
        )

    def _load_live(self, identifier: str) -> CacheEntry | None:
        _require_text(identifier, "identifier")
        try:
            source = self._store.get_document(self._index, identifier)
        except EntryNotFoundError:
            return None

        entry = CacheEntry.from_document(identifier, source)
        if entry is None:
            logger.warning("cache_document_malformed", index=self._index, identifier=identifier)
            return None
        if not entry.is_live(self.now()):
            return None
        return entry

    def get(self, identifier: str) -> str | None:
        """Return the content stored under ``identifier``.

        Returns ``None`` when there is no document or it has expired; an
        expired document is left for ``collect_garbage``.

        Raises:
            StoreUnavailableError: The store could not answer.
        """
        entry = self._load_live(identifier)
        return entry.content if entry is not None else None

    def has(self, identifier: str) -> bool:
        """Return True iff ``get(identifier)`` would return content."""
        return self._load_live(identifier) is not None

    def remove(self, identifier: str) -> bool:
        """Delete the entry ``identifier`` if it is live.

        Check and delete are two requests; an entry removed or overwritten
        by someone else in between is handled best-effort.

        Returns:
            True if an entry was removed, False if there was none.
        """
        if not self.has(identifier):
            return False
        try:
            self._store.delete_document(self._index, identifier)
        except EntryNotFoundError:
            logger.debug("cache_entry_vanished", index=self._index, identifier=identifier)
            return False
        logger.debug("cache_entry_removed", index=self._index, identifier=identifier)
        return True

    # ------------------------------------------------------------------ #
    # Bulk operations
    # ------------------------------------------------------------------ #

    def flush(self) -> None:
        """Remove every entry of this cache. No-op on an empty index."""
        deleted = self._store.delete_by_query(self._index, queries.match_all())
        logger.info("cache_flushed", index=self._index, deleted=deleted)

    def flush_by_tag(self, tag: str) -> None:
        """Remove every entry tagged ``tag``."""
        _require_text(tag, "tag")
        deleted = self._store.delete_by_query(self._index, queries.tag_equals(tag))
        logger.info("cache_flushed_by_tag", index=self._index, tag=tag, deleted=deleted)

    def flush_by_tags(self, tags: Iterable[str]) -> None:
        """Remove every entry carrying at least one of ``tags``."""
        if isinstance(tags, str):
            raise ValidationError("tags must be an iterable of strings", field="tags", value=tags)
        tags = normalize_tags(_require_text(tag, "tag") for tag in tags)
        if not tags:
            return
        deleted = self._store.delete_by_query(self._index, queries.tags_any(tags))
        logger.info("cache_flushed_by_tags", index=self._index, tags=list(tags), deleted=deleted)

    def collect_garbage(self) -> None:
        """Remove entries whose finite lifetime has run out.

        Entries stored with lifetime ``0`` are never touched.
        """
        now = self.now()
        deleted = self._store.delete_by_query(self._index, queries.expired(now))
        logger.info("cache_garbage_collected", index=self._index, now=now, deleted=deleted)

    def find_identifiers_by_tag(self, tag: str) -> list[str]:
        """Return the identifiers of every entry tagged ``tag``.

        Pages through the full result set with a scroll cursor. Expired
        entries that have not been garbage collected yet are included.
        Identifiers are returned once each, in index order.
        """
        if not isinstance(tag, str):
            raise ValidationError("tag must be a string", field="tag", value=tag)
        if tag == "":
            return []

        seen: dict[str, None] = {}
        for page in self._store.search_ids(
            self._index, queries.tag_equals(tag), page_size=self.scroll_size
        ):
            for identifier in page:
                if identifier:
                    seen.setdefault(identifier, None)
        identifiers = list(seen)
        logger.debug("cache_tag_lookup", index=self._index, tag=tag, found=len(identifiers))
        return identifiers

    # camelCase names used by CMS-style cache frontends
    flushByTag = flush_by_tag
    flushByTags = flush_by_tags
    collectGarbage = collect_garbage
    findIdentifiersByTag = find_identifiers_by_tag


__all__ = [
    "DEFAULT_INDEX_NAME",
    "DEFAULT_LIFETIME",
    "TaggableCacheBackend",
    "ElasticsearchBackend",
]
