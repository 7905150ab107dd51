"""Unit tests for the remote index endpoint."""

from __future__ import annotations

import json

import pytest
import requests

from core.errors import (
    EstoolConfigError,
    EstoolConnectionError,
    EstoolCursorError,
    EstoolIngestError,
)
from core.types import TransferRecord
from endpoints.elastic import ElasticEndpoint, parse_bulk_response, parse_index_url
from transfer.channel import BatchChannel
from tests.fake_search_service import FakeResponse, FakeSearchService

_LIBRARY_BODY = {
    "aliases": {"books": {}},
    "mappings": {"book": {"properties": {"title": {"type": "string"}}}, "author": {}},
    "settings": {
        "index": {
            "number_of_shards": "5",
            "number_of_replicas": "1",
            "refresh_interval": "1s",
            "analysis": {"analyzer": {"folded": {"tokenizer": "standard"}}},
        }
    },
}


def _service_with_library() -> FakeSearchService:
    service = FakeSearchService()
    service.add_index(
        "library",
        _LIBRARY_BODY,
        {
            "book": [
                ("b1", {"title": "Dune"}),
                ("b2", {"title": "Emma"}),
                ("b3", {"title": "Ulysses"}),
            ],
            "author": [("a1", {"name": "Herbert"}), ("a2", {"name": "Austen"})],
        },
    )
    return service


def _record(doc_id: str) -> TransferRecord:
    return TransferRecord(doc_id=doc_id, doc_type="book", payload=b'{"title":"x"}')


class _RefusingSession:
    def request(self, method, url, **kwargs):
        raise requests.ConnectionError("connection refused")

    def close(self) -> None:
        return None


class _StaticSession:
    def __init__(self, response: FakeResponse) -> None:
        self._response = response

    def request(self, method, url, **kwargs):
        return self._response

    def close(self) -> None:
        return None


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("localhost:9200/library", ("http://localhost:9200", "/library")),
        ("https://es.example.com/library/", ("https://es.example.com", "/library")),
    ],
)
def test_parse_index_url_normalizes_scheme(url: str, expected: tuple[str, str]) -> None:
    assert parse_index_url(url) == expected


@pytest.mark.parametrize("url", ["http://localhost:9200", "http://localhost:9200/a/b"])
def test_parse_index_url_requires_single_index(url: str) -> None:
    with pytest.raises(EstoolConfigError):
        parse_index_url(url)


def test_get_index_clears_aliases(config) -> None:
    """Metadata read from the service should carry no aliases."""
    endpoint = ElasticEndpoint("localhost:9200/library", config, session=_service_with_library())

    metadata = endpoint.get_index()

    assert metadata.aliases == {} and metadata.collections == ("book", "author")


def test_metadata_roundtrip_keeps_settings_identical(config) -> None:
    """get_index then put_index without overrides should copy settings verbatim."""
    source_service = _service_with_library()
    target_service = FakeSearchService()
    source = ElasticEndpoint("localhost:9200/library", config, session=source_service)
    target = ElasticEndpoint("localhost:9201/library-copy", config, session=target_service)

    target.put_index(source.get_index(), None, None)

    stored = target_service.indexes["library-copy"]
    assert stored["settings"] == _LIBRARY_BODY["settings"]
    assert stored["mappings"] == _LIBRARY_BODY["mappings"]
    assert stored["aliases"] == {}


def test_put_index_applies_overrides(config) -> None:
    service = _service_with_library()
    source = ElasticEndpoint("localhost:9200/library", config, session=service)
    target = ElasticEndpoint("localhost:9200/library-copy", config, session=service)

    target.put_index(source.get_index(), 0, 1)

    index_settings = service.indexes["library-copy"]["settings"]["index"]
    assert index_settings["number_of_replicas"] == "0"
    assert index_settings["number_of_shards"] == "1"


def test_put_index_fails_when_index_exists(config) -> None:
    """Creating over an existing index is an HTTP error."""
    service = _service_with_library()
    endpoint = ElasticEndpoint("localhost:9200/library", config, session=service)

    with pytest.raises(EstoolConnectionError):
        endpoint.put_index(endpoint.get_index(), None, None)


def test_delete_index_ignores_missing_index(config) -> None:
    service = FakeSearchService()
    endpoint = ElasticEndpoint("localhost:9200/ghost", config, session=service)

    endpoint.delete_index()

    assert service.requests == [("DELETE", "/ghost")]


def test_stream_to_scrolls_every_collection(config) -> None:
    """Five documents in two collections should arrive as batches of 2, 2, 1."""
    service = _service_with_library()
    endpoint = ElasticEndpoint("localhost:9200/library", config, session=service)
    channel = BatchChannel(capacity=8)

    total = endpoint.stream_to(("book", "author"), 2, 2, channel)
    batches = list(channel)

    assert total == 5 and [len(batch) for batch in batches] == [2, 2, 1]
    assert len(service.released_scrolls) == 2


def test_bulk_create_reports_item_statuses(config) -> None:
    service = _service_with_library()
    service.planned_statuses = {"n2": [429], "n3": [400]}
    endpoint = ElasticEndpoint("localhost:9200/library", config, session=service)

    results = endpoint.bulk_create([_record("b1"), _record("n1"), _record("n2"), _record("n3")])

    assert [result.status for result in results] == [409, 201, 429, 400]
    assert results[3].reason == "status 400"


def test_bulk_create_treats_overloaded_request_as_retriable(config) -> None:
    """A whole-request 429 should mark every record for retry."""
    endpoint = ElasticEndpoint(
        "localhost:9200/library", config, session=_StaticSession(FakeResponse(429, {}))
    )

    results = endpoint.bulk_create([_record("n1"), _record("n2")])

    assert [result.status for result in results] == [429, 429]


def test_transport_failure_is_connection_error(config) -> None:
    endpoint = ElasticEndpoint("localhost:9200/library", config, session=_RefusingSession())

    with pytest.raises(EstoolConnectionError):
        endpoint.get_index()


def test_malformed_scroll_answer_is_cursor_error(config) -> None:
    endpoint = ElasticEndpoint(
        "localhost:9200/library", config, session=_StaticSession(FakeResponse(200, {"hits": {}}))
    )

    with pytest.raises(EstoolCursorError):
        endpoint.open_scroll("book", 10)


def test_parse_bulk_response_rejects_missing_items() -> None:
    with pytest.raises(EstoolIngestError):
        parse_bulk_response(json.dumps({"errors": False}).encode("utf-8"))
