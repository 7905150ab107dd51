"""Collection extraction into batches.

This module drains one scroll cursor per collection, converts every hit
into a transfer record, and feeds a shared batcher. The batcher is only
flushed once after the last collection, so batches may span collections.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from core.errors import EstoolCursorError
from core.logging_config import get_logger
from core.types import TransferRecord
from transfer.batcher import Batcher
from transfer.channel import BatchChannel
from transfer.cursor import ScrollCursor, ScrollTransport

_LOGGER = get_logger(__name__)


def hit_to_record(hit: Any, collection: str) -> TransferRecord:
    """Convert one raw search hit into a transfer record.

    Args:
        hit: Hit object with ``_id`` and ``_source`` fields.
        collection: Collection the hit was scanned from.

    Returns:
        Transfer record carrying the compact JSON body.

    Raises:
        EstoolCursorError: If the hit has no usable id or source.
    """
    if not isinstance(hit, dict):
        raise EstoolCursorError(
            f"Malformed hit in collection '{collection}': "
            f"expected an object, got {type(hit).__name__}."
        )
    doc_id = hit.get("_id")
    if not isinstance(doc_id, str) or not doc_id:
        raise EstoolCursorError(
            f"Malformed hit in collection '{collection}': missing string '_id'."
        )
    if "_source" not in hit:
        raise EstoolCursorError(
            f"Malformed hit '{doc_id}' in collection '{collection}': missing '_source'. "
            "Enable _source on the index to export it."
        )
    payload = json.dumps(hit["_source"], separators=(",", ":"), ensure_ascii=False)
    return TransferRecord(doc_id=doc_id, doc_type=collection, payload=payload.encode("utf-8"))


def extract_collections(
    transport: ScrollTransport,
    collections: Sequence[str],
    window: int,
    batcher: Batcher,
) -> int:
    """Drain every collection into the batcher without flushing.

    Args:
        transport: Scroll operations of the source endpoint.
        collections: Collection names to scan, in order.
        window: Requested page size.
        batcher: Shared batcher receiving records.

    Returns:
        Number of records extracted.
    """
    total = 0
    for collection in collections:
        _LOGGER.info("collection_export_started", collection=collection, window=window)
        cursor = ScrollCursor(transport, collection, window)
        collection_count = 0
        for page in cursor.pages():
            for hit in page:
                batcher.put(hit_to_record(hit, collection))
            collection_count += len(page)
            _LOGGER.debug("page_fetched", collection=collection, hits=len(page))
        _LOGGER.info(
            "collection_export_completed",
            collection=collection,
            record_count=collection_count,
        )
        total += collection_count
    return total


def stream_collections(
    transport: ScrollTransport,
    collections: Sequence[str],
    window: int,
    bulk_size: int,
    channel: BatchChannel,
) -> int:
    """Extract all collections into the channel, then close it.

    The channel is closed even when extraction fails, so consumers always
    see the end of the stream.

    Returns:
        Number of records extracted.
    """
    try:
        batcher = Batcher(bulk_size, channel)
        total = extract_collections(transport, collections, window, batcher)
        batcher.flush()
    finally:
        channel.close()
    _LOGGER.info(
        "extraction_completed",
        collection_count=len(collections),
        record_count=total,
        batch_count=batcher.emitted_batches,
    )
    return total
