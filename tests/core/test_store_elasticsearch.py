"""
Tests for ElasticsearchDocumentStore.

Uses a MagicMock in place of the elasticsearch-py client; the point is
the request shapes and the exception translation, not the cluster.
"""

from unittest.mock import MagicMock

import pytest
from elasticsearch import ApiError, ConnectionTimeout, NotFoundError
from elasticsearch import ConnectionError as TransportConnectionError

from elasticcache.core.errors import (
    EntryNotFoundError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from elasticcache.core.settings import ElasticCacheSettings
from elasticcache.core.store import ElasticsearchDocumentStore, create_client


def _meta(status: int) -> MagicMock:
    meta = MagicMock()
    meta.status = status
    return meta


def _api_error(cls, status: int, error_type: str, message: str = "error"):
    return cls(message, meta=_meta(status), body={"error": {"type": error_type}, "status": status})


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def store(client):
    return ElasticsearchDocumentStore(client, url="http://localhost:9200/")


class TestCreateClient:
    def test_builds_node_from_settings(self, monkeypatch):
        captured = {}

        def fake_elasticsearch(**kwargs):
            captured.update(kwargs)
            return MagicMock()

        monkeypatch.setattr("elasticcache.core.store.Elasticsearch", fake_elasticsearch)
        settings = ElasticCacheSettings(
            _env_file=None, host="es.internal", port=9243, transport="https", path="/search",
            request_timeout=3.0,
        )
        create_client(settings)

        assert captured["hosts"] == [
            {"host": "es.internal", "port": 9243, "scheme": "https", "path_prefix": "/search"}
        ]
        assert captured["request_timeout"] == 3.0

    def test_root_path_has_no_prefix(self, monkeypatch):
        captured = {}
        monkeypatch.setattr(
            "elasticcache.core.store.Elasticsearch", lambda **kwargs: captured.update(kwargs)
        )
        create_client(ElasticCacheSettings(_env_file=None))
        assert captured["hosts"] == [{"host": "localhost", "port": 9200, "scheme": "http"}]


class TestIndexManagement:
    def test_index_exists(self, store, client):
        client.indices.exists.return_value = True
        assert store.index_exists("t3cache") is True
        client.indices.exists.assert_called_once_with(index="t3cache")

    def test_create_index_passes_body_sections(self, store, client):
        body = {"settings": {"number_of_shards": 1}, "mappings": {"properties": {}}, "aliases": {}}
        assert store.create_index("t3cache", body) is True
        client.indices.create.assert_called_once_with(
            index="t3cache", settings={"number_of_shards": 1}, mappings={"properties": {}}
        )

    def test_create_index_already_exists(self, store, client):
        client.indices.create.side_effect = _api_error(
            ApiError, 400, "resource_already_exists_exception"
        )
        assert store.create_index("t3cache", {}) is False

    def test_create_index_other_error(self, store, client):
        client.indices.create.side_effect = _api_error(ApiError, 400, "illegal_argument_exception")
        with pytest.raises(StoreUnavailableError) as exc_info:
            store.create_index("t3cache", {})
        assert exc_info.value.context.http_status == 400
        assert exc_info.value.context.operation == "create_index"

    def test_ready_on_yellow(self, store, client):
        client.cluster.health.return_value = {"status": "yellow", "timed_out": False}
        assert store.is_index_ready("t3cache", wait=0.5) is True
        client.cluster.health.assert_called_once_with(
            index="t3cache", wait_for_status="yellow", timeout="500ms"
        )

    def test_not_ready_when_timed_out(self, store, client):
        client.cluster.health.return_value = {"status": "red", "timed_out": True}
        assert store.is_index_ready("t3cache") is False

    def test_not_ready_on_408(self, store, client):
        client.cluster.health.side_effect = _api_error(ApiError, 408, "timeout")
        assert store.is_index_ready("t3cache") is False


class TestDocuments:
    def test_upsert(self, store, client):
        store.upsert_document("t3cache", "id", {"content": "x", "tags": [], "expiresAt": 0})
        client.index.assert_called_once_with(
            index="t3cache",
            id="id",
            document={"content": "x", "tags": [], "expiresAt": 0},
            refresh=None,
        )

    def test_upsert_with_refresh(self, client):
        store = ElasticsearchDocumentStore(client, refresh_on_write=True)
        store.upsert_document("t3cache", "id", {})
        assert client.index.call_args.kwargs["refresh"] == "wait_for"

    def test_get_returns_source(self, store, client):
        client.get.return_value = {"found": True, "_id": "id", "_source": {"content": "x"}}
        assert store.get_document("t3cache", "id") == {"content": "x"}

    def test_get_missing_document(self, store, client):
        client.get.side_effect = NotFoundError(
            "Not found", meta=_meta(404), body={"_index": "t3cache", "_id": "id", "found": False}
        )
        with pytest.raises(EntryNotFoundError) as exc_info:
            store.get_document("t3cache", "id")
        assert exc_info.value.identifier == "id"

    def test_get_on_missing_index(self, store, client):
        client.get.side_effect = _api_error(NotFoundError, 404, "index_not_found_exception")
        with pytest.raises(StoreUnavailableError) as exc_info:
            store.get_document("t3cache", "id")
        assert not isinstance(exc_info.value, EntryNotFoundError)
        assert exc_info.value.context.http_status == 404
        assert "does not exist" in exc_info.value.message

    def test_get_timeout(self, store, client):
        client.get.side_effect = ConnectionTimeout("timed out")
        with pytest.raises(StoreTimeoutError) as exc_info:
            store.get_document("t3cache", "id")
        assert exc_info.value.retryable
        assert exc_info.value.context.url == "http://localhost:9200/"

    def test_connection_refused(self, store, client):
        client.indices.exists.side_effect = TransportConnectionError("refused")
        with pytest.raises(StoreUnavailableError):
            store.index_exists("t3cache")

    def test_delete_missing_document(self, store, client):
        client.delete.side_effect = NotFoundError(
            "Not found", meta=_meta(404), body={"result": "not_found"}
        )
        with pytest.raises(EntryNotFoundError):
            store.delete_document("t3cache", "id")

    def test_delete_by_query(self, store, client):
        client.delete_by_query.return_value = {"deleted": 7}
        assert store.delete_by_query("t3cache", {"match_all": {}}) == 7
        client.delete_by_query.assert_called_once_with(
            index="t3cache", query={"match_all": {}}, conflicts="proceed", refresh=None
        )

    def test_delete_by_query_server_error(self, store, client):
        client.delete_by_query.side_effect = _api_error(ApiError, 500, "exception")
        with pytest.raises(StoreUnavailableError) as exc_info:
            store.delete_by_query("t3cache", {"match_all": {}})
        assert exc_info.value.context.http_status == 500


class TestSearchIds:
    @staticmethod
    def _page(scroll_id, *ids):
        return {"_scroll_id": scroll_id, "hits": {"hits": [{"_id": i} for i in ids]}}

    def test_scrolls_until_empty_page(self, store, client):
        client.search.return_value = self._page("s1", "a", "b")
        client.scroll.side_effect = [self._page("s2", "c"), self._page("s2")]

        pages = list(store.search_ids("t3cache", {"term": {"tags": "t"}}, page_size=2))

        assert pages == [["a", "b"], ["c"]]
        client.search.assert_called_once_with(
            index="t3cache",
            query={"term": {"tags": "t"}},
            scroll="1m",
            size=2,
            sort=["_doc"],
            source=False,
        )
        assert client.scroll.call_args_list[0].kwargs == {"scroll_id": "s1", "scroll": "1m"}
        client.clear_scroll.assert_called_once_with(scroll_id="s2")

    def test_no_hits(self, store, client):
        client.search.return_value = self._page("s1")
        assert list(store.search_ids("t3cache", {"match_all": {}})) == []
        client.scroll.assert_not_called()
        client.clear_scroll.assert_called_once_with(scroll_id="s1")

    def test_scroll_failure_clears_context(self, store, client):
        client.search.return_value = self._page("s1", "a")
        client.scroll.side_effect = _api_error(NotFoundError, 404, "search_context_missing_exception")

        with pytest.raises(StoreUnavailableError) as exc_info:
            list(store.search_ids("t3cache", {"match_all": {}}))
        assert "does not exist" not in exc_info.value.message
        assert "search_context_missing_exception" in exc_info.value.message
        assert exc_info.value.context.operation == "scroll"
        client.clear_scroll.assert_called_once_with(scroll_id="s1")

    def test_clear_scroll_failure_is_logged_not_raised(self, store, client):
        client.search.return_value = self._page("s1")
        client.clear_scroll.side_effect = TransportConnectionError("gone")
        assert list(store.search_ids("t3cache", {"match_all": {}})) == []


def test_close_closes_client(store, client):
    store.close()
    client.close.assert_called_once()
