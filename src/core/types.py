"""Shared typed models.

This module defines immutable data models used by the transfer pipeline,
endpoint adapters, and SDK layer to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import (
    DEFAULT_BULK_SIZE,
    DEFAULT_PARALLELISM,
    DEFAULT_WINDOW,
)


@dataclass(frozen=True)
class TransferRecord:
    """One document moving between endpoints.

    Attributes:
        doc_id: Server-assigned identifier, unique within its collection.
        doc_type: Collection (mapping type) name.
        payload: Serialized document body, treated as opaque bytes.
    """

    doc_id: str
    doc_type: str
    payload: bytes


Batch = tuple[TransferRecord, ...]


@dataclass(frozen=True)
class BulkItemResult:
    """Per-record outcome reported by a bulk create request.

    Attributes:
        doc_id: Identifier echoed by the destination.
        status: HTTP-equivalent status code for this record.
        reason: Optional error description from the destination.
    """

    doc_id: str
    status: int
    reason: str | None = None


@dataclass(frozen=True)
class IngestReport:
    """Accounting summary for one ingestion run.

    Attributes:
        delivered: Records written or already present at the destination.
        duplicates: Subset of delivered records answered with a conflict.
        dropped: Records rejected permanently and not retried.
        retried: Retry submissions caused by overload answers.
        batches: Bulk requests issued.
        dropped_ids: Identifiers of dropped records.
    """

    delivered: int = 0
    duplicates: int = 0
    dropped: int = 0
    retried: int = 0
    batches: int = 0
    dropped_ids: tuple[str, ...] = ()

    def merge(self, other: "IngestReport") -> "IngestReport":
        """Combine two worker reports into one."""
        return IngestReport(
            delivered=self.delivered + other.delivered,
            duplicates=self.duplicates + other.duplicates,
            dropped=self.dropped + other.dropped,
            retried=self.retried + other.retried,
            batches=self.batches + other.batches,
            dropped_ids=self.dropped_ids + other.dropped_ids,
        )


@dataclass(frozen=True)
class TransferOptions:
    """Options shared by export, import, and copy.

    Attributes:
        source_uri: Index URL or dump path/``s3://`` URI to read from.
        target_uri: Index URL or dump path/``s3://`` URI to write to.
        force: Delete/overwrite the destination before writing.
        window: Requested scroll page size.
        bulk_size: Records per bulk batch.
        parallelism: Concurrent ingest workers.
        replicas: Optional replica-count override.
        shards: Optional shard-count override.
    """

    source_uri: str
    target_uri: str
    force: bool = False
    window: int = DEFAULT_WINDOW
    bulk_size: int = DEFAULT_BULK_SIZE
    parallelism: int = DEFAULT_PARALLELISM
    replicas: int | None = None
    shards: int | None = None
