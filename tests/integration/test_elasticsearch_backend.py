"""
Integration tests against a live Elasticsearch node.

Skipped unless ``ELASTICCACHE_TEST_URL`` points at a disposable cluster,
e.g. ``ELASTICCACHE_TEST_URL=http://localhost:9200``. Every test uses its
own index and deletes it afterwards.
"""

from __future__ import annotations

import os
import time
import uuid

import pytest

pytestmark = pytest.mark.skipif(
    not os.environ.get("ELASTICCACHE_TEST_URL"),
    reason="ELASTICCACHE_TEST_URL not set",
)


@pytest.fixture
def es_client():
    from elasticsearch import Elasticsearch

    client = Elasticsearch(os.environ["ELASTICCACHE_TEST_URL"], request_timeout=30)
    yield client
    client.close()


@pytest.fixture
def backend(es_client):
    from elasticcache.core.cache import ElasticsearchBackend
    from elasticcache.core.store import ElasticsearchDocumentStore

    index = f"functest-{uuid.uuid4().hex[:12]}"
    store = ElasticsearchDocumentStore(es_client, refresh_on_write=True)
    yield ElasticsearchBackend(store, index_name=index, scroll_size=2)
    es_client.indices.delete(index=index, ignore_unavailable=True)


class TestElasticsearchBackend:
    def test_creates_index_with_owned_mappings(self, backend, es_client):
        mapping = es_client.indices.get_mapping(index=backend.index)[backend.index]["mappings"]
        assert mapping["properties"]["tags"]["type"] == "keyword"
        assert mapping["properties"]["expiresAt"]["type"] == "long"

    def test_round_trip(self, backend):
        backend.set("my_test_identifier", "mytestdata", ["test_tag"], 0)
        assert backend.get("my_test_identifier") == "mytestdata"
        assert backend.has("my_test_identifier")
        assert backend.get("not_found_identifier") is None

    def test_remove(self, backend):
        backend.set("my_test_identifier", "mytestdata", ["test_tag"], 0)
        assert backend.remove("my_test_identifier") is True
        assert backend.get("my_test_identifier") is None
        assert backend.remove("my_test_identifier") is False

    def test_flush_by_tag_and_find(self, backend):
        backend.set("my_test_identifier", "mytestdata", ["test_tag"], 0)
        backend.set("my_test_identifier1", "mytestdata", ["test_tag2"], 0)
        backend.set("my_test_identifier2", "mytestdata", ["test_tag"], 0)
        backend.set("my_test_identifier3", "mytestdata", ["test_tag2"], 0)

        assert sorted(backend.find_identifiers_by_tag("test_tag")) == [
            "my_test_identifier",
            "my_test_identifier2",
        ]

        backend.flush_by_tag("test_tag")

        assert backend.find_identifiers_by_tag("test_tag") == []
        assert sorted(backend.find_identifiers_by_tag("test_tag2")) == [
            "my_test_identifier1",
            "my_test_identifier3",
        ]

    def test_find_pages_past_scroll_size(self, backend):
        identifiers = [f"entry_{i}" for i in range(7)]
        for identifier in identifiers:
            backend.set(identifier, "x", ["bulk"], 0)
        assert sorted(backend.find_identifiers_by_tag("bulk")) == identifiers

    def test_collect_garbage(self, backend):
        backend.set("short", "x", [], 1)
        backend.set("long", "x", [], 1500)
        backend.set("forever", "x", [], 0)
        time.sleep(2)

        backend.collect_garbage()

        assert backend.has("long")
        assert backend.has("forever")
        assert backend.store.client.count(index=backend.index)["count"] == 2

    def test_flush(self, backend):
        backend.set("a", "x", ["t"], 0)
        backend.set("b", "x", ["t"], 0)
        backend.flush()
        assert backend.find_identifiers_by_tag("t") == []
