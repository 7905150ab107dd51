"""Integration tests for export, import, and copy through the SDK."""

from __future__ import annotations

import json

import pytest

from core.config import EstoolConfig
from core.errors import EstoolExtractError
from core.types import TransferOptions
from estool import EstoolClient
from tests.fake_s3_client import FakeS3Client
from tests.fake_search_service import FakeSearchService

_SETTINGS = {
    "index": {"number_of_shards": "3", "number_of_replicas": "2", "refresh_interval": "5s"}
}


def _seed(service: FakeSearchService, name: str, count: int) -> None:
    service.add_index(
        name,
        {"aliases": {"live": {}}, "mappings": {"event": {}, "user": {}}, "settings": _SETTINGS},
        {
            "event": [(f"e{index}", {"seq": index}) for index in range(count)],
            "user": [(f"u{index}", {"name": f"user-{index}"}) for index in range(count // 10)],
        },
    )


@pytest.fixture
def service(monkeypatch) -> FakeSearchService:
    fake = FakeSearchService()
    monkeypatch.setattr("endpoints.elastic.requests.Session", lambda: fake)
    return fake


@pytest.fixture
def client() -> EstoolClient:
    return EstoolClient(EstoolConfig(channel_capacity=4, retry_delay=0.0))


def test_export_then_import_reproduces_index(service, client, tmp_path) -> None:
    """A dump round trip should keep every document and the index settings."""
    _seed(service, "events", 230)
    dump_path = tmp_path / "events.dump"

    exported = client.export_index(
        TransferOptions("localhost:9200/events", str(dump_path), window=40, bulk_size=25)
    )
    imported = client.import_index(
        TransferOptions(str(dump_path), "localhost:9200/restored", bulk_size=25, parallelism=4)
    )

    assert exported.delivered == imported.delivered == 253
    assert service.documents["restored"] == service.documents["events"]
    assert service.indexes["restored"]["settings"] == _SETTINGS
    assert service.indexes["restored"]["aliases"] == {}
    assert all(size <= 25 for size in service.bulk_sizes)


def test_copy_retries_overload_and_counts_conflicts(service, client) -> None:
    _seed(service, "events", 1000)
    service.planned_statuses = {"e7": [409], "e3": [429, 429], "e500": [503]}

    report = client.copy_index(
        TransferOptions(
            "localhost:9200/events",
            "localhost:9200/events-copy",
            bulk_size=50,
            parallelism=4,
            replicas=0,
        )
    )

    assert (report.delivered, report.duplicates, report.dropped) == (1100, 1, 0)
    assert report.retried == 3
    copied = service.documents["events-copy"]
    assert len(copied) == 1099 and ("event", "e7") not in copied
    assert service.indexes["events-copy"]["settings"]["index"]["number_of_replicas"] == "0"
    assert service.indexes["events-copy"]["settings"]["index"]["number_of_shards"] == "3"


def test_copy_drops_rejected_records(service, client) -> None:
    _seed(service, "events", 20)
    service.planned_statuses = {"e11": [400]}

    report = client.copy_index(
        TransferOptions("localhost:9200/events", "localhost:9200/events-copy", bulk_size=4)
    )

    assert (report.delivered, report.dropped, report.dropped_ids) == (21, 1, ("e11",))


def test_copy_force_replaces_existing_target(service, client) -> None:
    _seed(service, "events", 10)
    service.add_index("events-copy", {"mappings": {"stale": {}}}, {"stale": [("s1", {})]})

    report = client.copy_index(
        TransferOptions("localhost:9200/events", "localhost:9200/events-copy", force=True)
    )

    assert report.delivered == 11
    assert ("stale", "s1") not in service.documents["events-copy"]
    assert list(service.indexes["events-copy"]["mappings"]) == ["event", "user"]


def test_s3_export_then_import(service, client, monkeypatch) -> None:
    s3_client = FakeS3Client()
    monkeypatch.setattr("endpoints.dump_file.create_s3_client", lambda config: s3_client)
    _seed(service, "events", 30)

    client.export_index(TransferOptions("localhost:9200/events", "s3://backups/events.dump"))
    client.import_index(TransferOptions("s3://backups/events.dump", "localhost:9200/restored"))

    first_line = s3_client.objects[("backups", "events.dump")].splitlines()[0]
    assert json.loads(first_line)["events"]["settings"] == _SETTINGS
    assert service.documents["restored"] == service.documents["events"]


def test_failed_s3_export_leaves_no_object(service, client, monkeypatch) -> None:
    """A scroll failure mid-export must not publish a truncated dump."""
    s3_client = FakeS3Client()
    monkeypatch.setattr("endpoints.dump_file.create_s3_client", lambda config: s3_client)
    _seed(service, "events", 5)
    service.failing_collections = {"user"}

    with pytest.raises(EstoolExtractError):
        client.export_index(
            TransferOptions("localhost:9200/events", "s3://backups/events.dump", bulk_size=2)
        )

    assert s3_client.objects == {}


def test_failed_local_export_leaves_no_dump(service, client, tmp_path) -> None:
    _seed(service, "events", 5)
    service.failing_collections = {"user"}
    dump_path = tmp_path / "events.dump"

    with pytest.raises(EstoolExtractError):
        client.export_index(TransferOptions("localhost:9200/events", str(dump_path)))

    assert not dump_path.exists()
