"""Remote index endpoint over HTTP.

This module talks to the search service's index, scroll, and bulk APIs
with a ``requests`` session. It is both a transfer source (metadata and
scroll extraction) and a transfer sink (index creation and bulk create).
"""

from __future__ import annotations

import json
from typing import Any, Sequence
from urllib.parse import urlsplit

import requests

from core.config import EstoolConfig
from core.constants import (
    BULK_RETRY_STATUSES,
    HTTP_SCHEMES,
    JSON_CONTENT_TYPE,
    NDJSON_CONTENT_TYPE,
)
from core.errors import (
    EstoolConfigError,
    EstoolConnectionError,
    EstoolCursorError,
    EstoolIngestError,
)
from core.index_metadata import IndexMetadata, parse_index_metadata
from core.logging_config import get_logger
from core.types import BulkItemResult, IngestReport, TransferRecord
from endpoints.bulk_format import encode_create_op
from transfer.channel import BatchChannel
from transfer.cursor import ScrollPage
from transfer.extractor import stream_collections
from transfer.ingestor import BulkIngestor

_LOGGER = get_logger(__name__)
_ERROR_BODY_LIMIT = 500


def parse_index_url(url: str) -> tuple[str, str]:
    """Split an index URL into service base URL and index path.

    Args:
        url: ``http(s)://host:port/index`` or ``host:port/index``.

    Returns:
        Tuple of base URL without trailing slash and ``/index`` path.

    Raises:
        EstoolConfigError: If the URL has no host or no index path.
    """
    normalized = url if url.startswith(HTTP_SCHEMES) else f"http://{url}"
    parts = urlsplit(normalized)
    index_path = parts.path.rstrip("/")
    if not parts.netloc:
        raise EstoolConfigError(f"Invalid index URL '{url}': missing host.")
    if not index_path or index_path.count("/") != 1:
        raise EstoolConfigError(
            f"Invalid index URL '{url}': expected exactly one index name, "
            "e.g. http://localhost:9200/my-index."
        )
    return f"{parts.scheme}://{parts.netloc}", index_path


class ElasticEndpoint:
    """Source and sink backed by one index of a remote search service."""

    def __init__(
        self,
        url: str,
        config: EstoolConfig,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url, self._index_path = parse_index_url(url)
        self._config = config
        self._session = session or requests.Session()

    @property
    def index_url(self) -> str:
        return f"{self._base_url}{self._index_path}"

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "ElasticEndpoint":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_index(self) -> IndexMetadata:
        """Read index metadata and clear its aliases.

        Raises:
            EstoolConnectionError: If the service is unreachable or errors.
            EstoolMetadataError: If the answer is not single-index metadata.
        """
        response = self._request("GET", self.index_url)
        metadata = parse_index_metadata(response.content).without_aliases()
        _LOGGER.info(
            "index_metadata_read",
            index=metadata.index_name,
            collections=list(metadata.collections),
        )
        return metadata

    def stream_to(
        self,
        collections: Sequence[str],
        window: int,
        bulk_size: int,
        channel: BatchChannel,
    ) -> int:
        """Scroll every collection into the channel, then close it."""
        return stream_collections(self, collections, window, bulk_size, channel)

    def open_scroll(self, collection: str, window: int) -> ScrollPage:
        """Start a scroll over one collection, sorted by index order."""
        query = {"query": {"match_all": {}}, "size": window, "sort": ["_doc"]}
        response = self._request(
            "POST",
            f"{self.index_url}/{collection}/_search",
            params={"scroll": self._config.scroll_keepalive},
            json=query,
        )
        return _parse_scroll_page(response)

    def continue_scroll(self, scroll_id: str) -> ScrollPage:
        response = self._request(
            "POST",
            f"{self._base_url}/_search/scroll",
            json={"scroll": self._config.scroll_keepalive, "scroll_id": scroll_id},
        )
        return _parse_scroll_page(response)

    def release_scroll(self, scroll_id: str) -> None:
        self._request(
            "DELETE",
            f"{self._base_url}/_search/scroll",
            json={"scroll_id": [scroll_id]},
            allowed_statuses=(404,),
        )

    def delete_index(self) -> None:
        """Delete the index; a missing index is not an error."""
        response = self._request("DELETE", self.index_url, allowed_statuses=(404,))
        if response.status_code == 404:
            _LOGGER.info("index_delete_skipped", index_url=self.index_url, reason="missing")
            return
        _LOGGER.info("index_deleted", index_url=self.index_url)

    def put_index(
        self,
        metadata: IndexMetadata,
        replicas: int | None,
        shards: int | None,
    ) -> IndexMetadata:
        """Create the index from metadata with optional count overrides."""
        prepared = metadata.prepare_for_write(replicas=replicas, shards=shards)
        self._request("PUT", self.index_url, json=prepared.index_body())
        _LOGGER.info(
            "index_created",
            index_url=self.index_url,
            source_index=prepared.index_name,
            collections=list(prepared.collections),
            replicas=replicas,
            shards=shards,
        )
        return prepared

    def accept_from(self, parallelism: int, channel: BatchChannel) -> IngestReport:
        """Bulk-create every batch from the channel with a worker pool."""
        ingestor = BulkIngestor(self, parallelism, retry_delay=self._config.retry_delay)
        return ingestor.run(channel)

    def commit(self) -> None:
        """Bulk creates are final as soon as they are acknowledged."""

    def bulk_create(self, records: Sequence[TransferRecord]) -> list[BulkItemResult]:
        """Send one bulk create request and report per-record status.

        A whole-request overload answer is reported as every record
        overloaded, so the caller retries all of them.

        Raises:
            EstoolConnectionError: On transport failures or other HTTP errors.
            EstoolIngestError: If the bulk response cannot be parsed.
        """
        body = b"".join(encode_create_op(record) for record in records)
        response = self._request(
            "POST",
            f"{self.index_url}/_bulk",
            data=body,
            headers={"Content-Type": NDJSON_CONTENT_TYPE},
            allowed_statuses=BULK_RETRY_STATUSES,
        )
        if response.status_code in BULK_RETRY_STATUSES:
            _LOGGER.warning(
                "bulk_request_overloaded",
                status=response.status_code,
                record_count=len(records),
            )
            return [
                BulkItemResult(doc_id=record.doc_id, status=response.status_code)
                for record in records
            ]
        return parse_bulk_response(response.content)

    def _request(
        self,
        method: str,
        url: str,
        allowed_statuses: Sequence[int] = (),
        **kwargs: Any,
    ) -> requests.Response:
        """Issue one HTTP request and fail on transport or status errors."""
        if "json" in kwargs:
            kwargs.setdefault("headers", {"Content-Type": JSON_CONTENT_TYPE})
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as error:
            raise EstoolConnectionError(
                f"Failed to reach {url} ({method}): {error}. "
                "Check that the service is running and the URL is correct."
            ) from error
        if response.status_code >= 300 and response.status_code not in allowed_statuses:
            raise EstoolConnectionError(
                f"HTTP error [{response.status_code}] from {method} {url}: "
                f"{response.text[:_ERROR_BODY_LIMIT]}"
            )
        return response


def _parse_scroll_page(response: requests.Response) -> ScrollPage:
    """Extract scroll id and hits from a search or scroll answer."""
    try:
        payload = json.loads(response.content)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise EstoolCursorError(f"Malformed scroll response: {error}.") from error
    scroll_id = payload.get("_scroll_id") if isinstance(payload, dict) else None
    if not isinstance(scroll_id, str):
        raise EstoolCursorError("Malformed scroll response: missing '_scroll_id'.")
    hits_block = payload.get("hits") or {}
    hits = hits_block.get("hits", []) if isinstance(hits_block, dict) else None
    if not isinstance(hits, list):
        raise EstoolCursorError("Malformed scroll response: 'hits.hits' must be a list.")
    return ScrollPage(scroll_id=scroll_id, hits=tuple(hits))


def parse_bulk_response(content: bytes) -> list[BulkItemResult]:
    """Parse per-item results of a bulk answer in request order.

    Args:
        content: Raw bulk response body.

    Returns:
        One result per item.

    Raises:
        EstoolIngestError: If the body is not a bulk response.
    """
    try:
        payload = json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise EstoolIngestError(f"Malformed bulk response: {error}.") from error
    items = payload.get("items") if isinstance(payload, dict) else None
    if not isinstance(items, list):
        raise EstoolIngestError("Malformed bulk response: missing 'items' list.")
    results: list[BulkItemResult] = []
    for item in items:
        if not isinstance(item, dict) or len(item) != 1:
            raise EstoolIngestError(f"Malformed bulk response item: {item!r}.")
        action = next(iter(item.values()))
        status = action.get("status") if isinstance(action, dict) else None
        if not isinstance(status, int):
            raise EstoolIngestError(f"Bulk response item without status: {item!r}.")
        results.append(
            BulkItemResult(
                doc_id=str(action.get("_id", "")),
                status=status,
                reason=_error_reason(action.get("error")),
            )
        )
    return results


def _error_reason(error: Any) -> str | None:
    if error is None:
        return None
    if isinstance(error, dict):
        return str(error.get("reason") or error.get("type") or error)
    return str(error)
