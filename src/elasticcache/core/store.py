"""
Document store collaborators for the cache backend.

The backend never talks to elasticsearch-py directly. It needs a small
capability set, expressed here as the ``DocumentStore`` protocol, and two
implementations provide it.

Manifesto:
    Elasticsearch is a search engine, not a key/value store. Keeping the
    client behind a narrow protocol means the cache semantics (expiry,
    tags, misses) live in one place and the transport details (exception
    zoo, scroll ids, refresh flags) in another.

    - **Protocol-based:** DocumentStore defines the contract
    - **One error seam:** client exceptions are translated here and only here
    - **Tier-aware:** InMemoryDocumentStore for tests/dev, Elasticsearch for production

Architecture:
    ::

        DocumentStore (Protocol)
        ├── ElasticsearchDocumentStore  — elasticsearch-py client
        └── InMemoryDocumentStore       — dict-backed, evaluates the query subset

        API: index_exists(index) → bool
             create_index(index, body) → bool
             is_index_ready(index, wait=0.0) → bool
             upsert_document(index, identifier, document)
             get_document(index, identifier) → dict       (EntryNotFoundError)
             delete_document(index, identifier)           (EntryNotFoundError)
             delete_by_query(index, query) → int
             search_ids(index, query, page_size) → Iterator[list[str]]
             close()

Error translation (ElasticsearchDocumentStore):
    ::

        NotFoundError (document)                 → EntryNotFoundError
        NotFoundError (index_not_found_exception)→ StoreUnavailableError
        ConnectionTimeout                        → StoreTimeoutError
        ApiError / TransportError                → StoreUnavailableError

Guardrails:
    ❌ DON'T: Let elasticsearch-py exceptions escape a store method
    ✅ DO: Wrap the call in ``_translate_errors``

Tags:
    elasticsearch, document-store, protocol, scroll, delete-by-query,
    elasticcache
"""

from __future__ import annotations

import copy
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Protocol

from elasticsearch import ApiError, ConnectionTimeout, Elasticsearch, NotFoundError, TransportError

from elasticcache.core.errors import (
    EntryNotFoundError,
    ErrorContext,
    StoreTimeoutError,
    StoreUnavailableError,
)
from elasticcache.core.logging import get_logger
from elasticcache.core.settings import ElasticCacheSettings

logger = get_logger(__name__)

INDEX_NOT_FOUND = "index_not_found_exception"
INDEX_ALREADY_EXISTS = "resource_already_exists_exception"


class DocumentStore(Protocol):
    """Capabilities the cache backend needs from a document store.

    All methods block until the store answers or the request times out.
    Failures other than a missing document raise ``StoreUnavailableError``.
    """

    def index_exists(self, index: str) -> bool:
        """Return True if ``index`` exists."""
        ...

    def create_index(self, index: str, body: Mapping[str, Any]) -> bool:
        """Create ``index`` from a create-index body.

        Returns:
            True if this call created the index, False if it already existed.
        """
        ...

    def is_index_ready(self, index: str, *, wait: float = 0.0) -> bool:
        """Return True once ``index`` can serve reads and writes.

        Args:
            wait: Seconds the store may block waiting for readiness.
        """
        ...

    def upsert_document(self, index: str, identifier: str, document: Mapping[str, Any]) -> None:
        """Create or fully replace the document ``identifier``."""
        ...

    def get_document(self, index: str, identifier: str) -> dict[str, Any]:
        """Return the ``_source`` of ``identifier``.

        Raises:
            EntryNotFoundError: No such document.
        """
        ...

    def delete_document(self, index: str, identifier: str) -> None:
        """Delete ``identifier``.

        Raises:
            EntryNotFoundError: No such document.
        """
        ...

    def delete_by_query(self, index: str, query: Mapping[str, Any]) -> int:
        """Delete every document matching ``query``; return the deleted count."""
        ...

    def search_ids(
        self, index: str, query: Mapping[str, Any], *, page_size: int = 1000
    ) -> Iterator[list[str]]:
        """Yield pages of document ids matching ``query`` until exhausted."""
        ...

    def close(self) -> None:
        """Release the connection handle."""
        ...


# ------------------------------------------------------------------ #
# Elasticsearch (production)
# ------------------------------------------------------------------ #


def _error_type(exc: ApiError) -> str | None:
    body = exc.body
    if isinstance(body, Mapping):
        error = body.get("error")
        if isinstance(error, Mapping):
            return error.get("type")
    return None


def _body(response: Any) -> Mapping[str, Any]:
    """Unwrap an elasticsearch-py ``ObjectApiResponse`` into its JSON body."""
    body = getattr(response, "body", response)
    return body if isinstance(body, Mapping) else {}


def create_client(settings: ElasticCacheSettings) -> Elasticsearch:
    """Build an elasticsearch-py client from connection settings."""
    node: dict[str, Any] = {
        "host": settings.host,
        "port": settings.port,
        "scheme": settings.transport,
    }
    path_prefix = settings.path.rstrip("/")
    if path_prefix:
        node["path_prefix"] = path_prefix
    return Elasticsearch(hosts=[node], request_timeout=settings.request_timeout)


class ElasticsearchDocumentStore:
    """DocumentStore backed by an elasticsearch-py client.

    The store owns the client: it is created once, reused for every call
    and closed with :meth:`close`. Every request carries the client's
    ``request_timeout``.

    Attributes:
        scroll_keepalive: Scroll context keep-alive (e.g. ``"1m"``).
        refresh_on_write: Ask Elasticsearch to make writes visible before
            returning (``refresh=wait_for`` / ``refresh=true``).

    Example:
        client = Elasticsearch("http://localhost:9200", request_timeout=10)
        store = ElasticsearchDocumentStore(client)
        store.upsert_document("t3cache", "page_1", {"content": "...", "tags": [], "expiresAt": 0})
    """

    def __init__(
        self,
        client: Elasticsearch,
        *,
        scroll_keepalive: str = "1m",
        refresh_on_write: bool = False,
        url: str | None = None,
    ):
        self._client = client
        self.scroll_keepalive = scroll_keepalive
        self.refresh_on_write = refresh_on_write
        self._url = url

    @classmethod
    def from_settings(cls, settings: ElasticCacheSettings) -> ElasticsearchDocumentStore:
        return cls(
            create_client(settings),
            scroll_keepalive=settings.scroll_keepalive,
            refresh_on_write=settings.refresh_on_write,
            url=settings.url,
        )

    @property
    def client(self) -> Elasticsearch:
        return self._client

    @contextmanager
    def _translate_errors(
        self, operation: str, index: str, identifier: str | None = None
    ) -> Iterator[None]:
        context = ErrorContext(index=index, identifier=identifier, operation=operation, url=self._url)
        try:
            yield
        except NotFoundError as e:
            error_type = _error_type(e)
            if identifier is not None and error_type != INDEX_NOT_FOUND:
                raise EntryNotFoundError(identifier, cause=e, context=context) from e
            context.http_status = 404
            if error_type == INDEX_NOT_FOUND:
                logger.warning("store_index_missing", index=index, operation=operation)
                message = f"Index {index!r} does not exist ({operation})"
            else:
                # e.g. search_context_missing_exception for an expired scroll
                logger.warning(
                    "store_resource_missing", index=index, operation=operation, error_type=error_type
                )
                message = f"Elasticsearch resource not found ({operation}): {error_type or e.message}"
            raise StoreUnavailableError(message, cause=e, context=context) from e
        except ConnectionTimeout as e:
            logger.warning("store_request_timeout", index=index, operation=operation)
            raise StoreTimeoutError(
                f"Elasticsearch request timed out ({operation})", cause=e, context=context
            ) from e
        except ApiError as e:
            context.http_status = e.status_code
            logger.warning(
                "store_request_failed", index=index, operation=operation, status=e.status_code
            )
            raise StoreUnavailableError(
                f"Elasticsearch rejected {operation}: {e.message}", cause=e, context=context
            ) from e
        except TransportError as e:
            logger.warning("store_unreachable", index=index, operation=operation, error=str(e))
            raise StoreUnavailableError(
                f"Elasticsearch unreachable ({operation}): {e}", cause=e, context=context
            ) from e

    def index_exists(self, index: str) -> bool:
        with self._translate_errors("index_exists", index):
            return bool(self._client.indices.exists(index=index))

    def create_index(self, index: str, body: Mapping[str, Any]) -> bool:
        params = {key: body[key] for key in ("settings", "mappings", "aliases") if body.get(key)}
        with self._translate_errors("create_index", index):
            try:
                self._client.indices.create(index=index, **params)
            except ApiError as e:
                if _error_type(e) != INDEX_ALREADY_EXISTS:
                    raise
                logger.info("index_created_concurrently", index=index)
                return False
        return True

    def is_index_ready(self, index: str, *, wait: float = 0.0) -> bool:
        timeout = f"{max(int(wait * 1000), 1)}ms"
        with self._translate_errors("is_index_ready", index):
            try:
                health = _body(self._client.cluster.health(
                    index=index, wait_for_status="yellow", timeout=timeout
                ))
            except ApiError as e:
                # cluster health answers 408 when the wait times out
                if e.status_code != 408:
                    raise
                return False
        return not health.get("timed_out", False) and health.get("status") in ("green", "yellow")

    def upsert_document(self, index: str, identifier: str, document: Mapping[str, Any]) -> None:
        with self._translate_errors("upsert_document", index, identifier):
            self._client.index(
                index=index,
                id=identifier,
                document=dict(document),
                refresh="wait_for" if self.refresh_on_write else None,
            )

    def get_document(self, index: str, identifier: str) -> dict[str, Any]:
        with self._translate_errors("get_document", index, identifier):
            response = _body(self._client.get(index=index, id=identifier))
        if not response.get("found", True):
            raise EntryNotFoundError(identifier, context=ErrorContext(index=index))
        return dict(response.get("_source") or {})

    def delete_document(self, index: str, identifier: str) -> None:
        with self._translate_errors("delete_document", index, identifier):
            self._client.delete(
                index=index,
                id=identifier,
                refresh="wait_for" if self.refresh_on_write else None,
            )

    def delete_by_query(self, index: str, query: Mapping[str, Any]) -> int:
        with self._translate_errors("delete_by_query", index):
            response = _body(self._client.delete_by_query(
                index=index,
                query=dict(query),
                conflicts="proceed",
                refresh=True if self.refresh_on_write else None,
            ))
        return int(response.get("deleted", 0))

    def search_ids(
        self, index: str, query: Mapping[str, Any], *, page_size: int = 1000
    ) -> Iterator[list[str]]:
        scroll_id: str | None = None
        try:
            with self._translate_errors("search", index):
                response = _body(self._client.search(
                    index=index,
                    query=dict(query),
                    scroll=self.scroll_keepalive,
                    size=page_size,
                    sort=["_doc"],
                    source=False,
                ))
            scroll_id = response.get("_scroll_id")
            while True:
                hits = response["hits"]["hits"]
                if not hits:
                    return
                yield [hit.get("_id") or "" for hit in hits]
                if scroll_id is None:
                    return
                with self._translate_errors("scroll", index):
                    response = _body(self._client.scroll(scroll_id=scroll_id, scroll=self.scroll_keepalive))
                scroll_id = response.get("_scroll_id", scroll_id)
        finally:
            if scroll_id is not None:
                self._clear_scroll(index, scroll_id)

    def _clear_scroll(self, index: str, scroll_id: str) -> None:
        # the context expires on its own after scroll_keepalive
        try:
            self._client.clear_scroll(scroll_id=scroll_id)
        except (ApiError, TransportError) as e:
            logger.warning("scroll_clear_failed", index=index, error=str(e))

    def close(self) -> None:
        self._client.close()


# ------------------------------------------------------------------ #
# In-memory (tests, single-process development)
# ------------------------------------------------------------------ #


def _values(source: Mapping[str, Any], field: str) -> list[Any]:
    value = source.get(field)
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _clauses(value: Any) -> list[Mapping[str, Any]]:
    if value is None:
        return []
    if isinstance(value, Mapping):
        return [value]
    return list(value)


def _in_range(value: Any, bounds: Mapping[str, Any]) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if "gte" in bounds and not value >= bounds["gte"]:
        return False
    if "gt" in bounds and not value > bounds["gt"]:
        return False
    if "lte" in bounds and not value <= bounds["lte"]:
        return False
    if "lt" in bounds and not value < bounds["lt"]:
        return False
    return True


def matches(query: Mapping[str, Any], source: Mapping[str, Any]) -> bool:
    """Evaluate the supported query DSL subset against a document source.

    Supports ``match_all``, ``term``, ``terms``, ``range`` and ``bool``
    (``filter``/``must``/``must_not``/``should``).
    """
    if len(query) != 1:
        raise ValueError(f"Query must have exactly one clause: {dict(query)!r}")
    ((kind, clause),) = query.items()

    if kind == "match_all":
        return True
    if kind == "term":
        ((field, expected),) = clause.items()
        if isinstance(expected, Mapping):
            expected = expected["value"]
        return expected in _values(source, field)
    if kind == "terms":
        ((field, expected),) = clause.items()
        values = _values(source, field)
        return any(candidate in values for candidate in expected)
    if kind == "range":
        ((field, bounds),) = clause.items()
        return any(_in_range(value, bounds) for value in _values(source, field))
    if kind == "bool":
        required = _clauses(clause.get("filter")) + _clauses(clause.get("must"))
        if not all(matches(q, source) for q in required):
            return False
        if any(matches(q, source) for q in _clauses(clause.get("must_not"))):
            return False
        should = _clauses(clause.get("should"))
        return not should or any(matches(q, source) for q in should)
    raise ValueError(f"Unsupported query clause: {kind!r}")


class InMemoryDocumentStore:
    """Dict-backed DocumentStore.

    Indexes are plain dicts of ``identifier → _source`` kept in insertion
    order, which stands in for Elasticsearch's ``_doc`` order. Documents are
    deep-copied on the way in and out so callers cannot mutate stored state.

    Not shared between processes and not persistent.

    Example:
        store = InMemoryDocumentStore()
        backend = ElasticsearchBackend(store, index_name="functest")
    """

    def __init__(self) -> None:
        self._indexes: dict[str, dict[str, dict[str, Any]]] = {}
        self._bodies: dict[str, dict[str, Any]] = {}
        self.closed = False

    def _index(self, index: str, operation: str) -> dict[str, dict[str, Any]]:
        try:
            return self._indexes[index]
        except KeyError:
            raise StoreUnavailableError(
                f"Index {index!r} does not exist ({operation})",
                context=ErrorContext(index=index, operation=operation),
            ) from None

    def index_exists(self, index: str) -> bool:
        return index in self._indexes

    def create_index(self, index: str, body: Mapping[str, Any]) -> bool:
        if index in self._indexes:
            return False
        self._indexes[index] = {}
        self._bodies[index] = copy.deepcopy(dict(body))
        return True

    def index_body(self, index: str) -> dict[str, Any]:
        """The create-index body ``index`` was created with."""
        self._index(index, "index_body")
        return copy.deepcopy(self._bodies[index])

    def is_index_ready(self, index: str, *, wait: float = 0.0) -> bool:
        return index in self._indexes

    def upsert_document(self, index: str, identifier: str, document: Mapping[str, Any]) -> None:
        self._index(index, "upsert_document")[identifier] = copy.deepcopy(dict(document))

    def get_document(self, index: str, identifier: str) -> dict[str, Any]:
        documents = self._index(index, "get_document")
        if identifier not in documents:
            raise EntryNotFoundError(identifier, context=ErrorContext(index=index))
        return copy.deepcopy(documents[identifier])

    def delete_document(self, index: str, identifier: str) -> None:
        documents = self._index(index, "delete_document")
        if documents.pop(identifier, None) is None:
            raise EntryNotFoundError(identifier, context=ErrorContext(index=index))

    def delete_by_query(self, index: str, query: Mapping[str, Any]) -> int:
        documents = self._index(index, "delete_by_query")
        doomed = [key for key, source in documents.items() if matches(query, source)]
        for key in doomed:
            del documents[key]
        return len(doomed)

    def search_ids(
        self, index: str, query: Mapping[str, Any], *, page_size: int = 1000
    ) -> Iterator[list[str]]:
        documents = self._index(index, "search")
        snapshot = [key for key, source in documents.items() if matches(query, source)]
        for start in range(0, len(snapshot), page_size):
            yield snapshot[start : start + page_size]

    def count(self, index: str, query: Mapping[str, Any] | None = None) -> int:
        documents = self._index(index, "count")
        if query is None:
            return len(documents)
        return sum(1 for source in documents.values() if matches(query, source))

    def close(self) -> None:
        self.closed = True


__all__ = [
    "DocumentStore",
    "ElasticsearchDocumentStore",
    "InMemoryDocumentStore",
    "create_client",
    "matches",
]
