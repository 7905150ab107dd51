"""Concurrent bulk ingestion with leftover retry.

Each worker pulls batches from the shared channel, merges the records
that were rejected with an overload status on its previous round, and
submits the combined set as one bulk create request. Conflicts count as
delivered, overloads are retried, every other rejection is dropped.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
import time
from typing import Protocol, Sequence

from core.constants import (
    BULK_CONFLICT_STATUS,
    BULK_RETRY_STATUSES,
    BULK_SUCCESS_STATUSES,
    DEFAULT_RETRY_DELAY_SECONDS,
)
from core.errors import EstoolConfigError, EstoolIngestError, TransferAborted
from core.logging_config import get_logger
from core.types import BulkItemResult, IngestReport, TransferRecord
from transfer.channel import BatchChannel

_LOGGER = get_logger(__name__)


class BulkWriter(Protocol):
    """Destination bulk-create primitive.

    Implementations return one result per submitted record, in request
    order, and raise ``EstoolConnectionError`` on transport failures.
    """

    def bulk_create(self, records: Sequence[TransferRecord]) -> list[BulkItemResult]:
        """Create all records in one request."""


@dataclass(frozen=True)
class BulkOutcome:
    """Classified result of one bulk submission."""

    delivered: int
    duplicates: int
    retry: tuple[TransferRecord, ...]
    dropped: tuple[tuple[TransferRecord, BulkItemResult], ...]


def classify_results(
    records: Sequence[TransferRecord],
    results: Sequence[BulkItemResult],
) -> BulkOutcome:
    """Partition bulk results into delivered, retriable, and dropped records.

    Args:
        records: Records in submission order.
        results: Per-record results in the same order.

    Returns:
        Classified outcome.

    Raises:
        EstoolIngestError: If the destination answered for a different
            number of records than were submitted.
    """
    if len(results) != len(records):
        raise EstoolIngestError(
            f"Bulk response reported {len(results)} items for {len(records)} submitted records. "
            "The destination answer cannot be matched to the request."
        )
    delivered = 0
    duplicates = 0
    retry: list[TransferRecord] = []
    dropped: list[tuple[TransferRecord, BulkItemResult]] = []
    for record, result in zip(records, results):
        if result.status in BULK_SUCCESS_STATUSES:
            delivered += 1
        elif result.status == BULK_CONFLICT_STATUS:
            delivered += 1
            duplicates += 1
        elif result.status in BULK_RETRY_STATUSES:
            retry.append(record)
        else:
            dropped.append((record, result))
    return BulkOutcome(
        delivered=delivered,
        duplicates=duplicates,
        retry=tuple(retry),
        dropped=tuple(dropped),
    )


@dataclass
class _WorkerTally:
    delivered: int = 0
    duplicates: int = 0
    retried: int = 0
    batches: int = 0
    dropped_ids: list[str] = field(default_factory=list)

    def to_report(self) -> IngestReport:
        return IngestReport(
            delivered=self.delivered,
            duplicates=self.duplicates,
            dropped=len(self.dropped_ids),
            retried=self.retried,
            batches=self.batches,
            dropped_ids=tuple(self.dropped_ids),
        )


class BulkIngestor:
    """Pool of ingest workers sharing one batch channel.

    Every worker owns its leftover list, so no state is shared besides the
    channel. ``run`` returns after all workers drained their leftovers.
    Overload retries are unbounded: a destination that never recovers
    keeps its worker busy forever.
    """

    def __init__(
        self,
        writer: BulkWriter,
        parallelism: int,
        retry_delay: float = DEFAULT_RETRY_DELAY_SECONDS,
    ) -> None:
        if parallelism < 1:
            raise EstoolConfigError(
                f"Invalid parallelism {parallelism}: at least one ingest worker is required."
            )
        self._writer = writer
        self._parallelism = parallelism
        self._retry_delay = retry_delay

    def run(self, channel: BatchChannel) -> IngestReport:
        """Drain the channel with all workers and return merged accounting.

        Raises:
            EstoolConnectionError: If a bulk request fails at transport level.
            EstoolIngestError: If a bulk response is malformed.
            TransferAborted: If the channel was aborted from outside.
        """
        report = IngestReport()
        first_error: BaseException | None = None
        aborted = False
        with ThreadPoolExecutor(
            max_workers=self._parallelism, thread_name_prefix="estool-ingest"
        ) as pool:
            futures = [
                pool.submit(self._worker_loop, worker_id, channel)
                for worker_id in range(self._parallelism)
            ]
            for future in as_completed(futures):
                try:
                    report = report.merge(future.result())
                except TransferAborted:
                    aborted = True
                except Exception as error:
                    if first_error is None:
                        first_error = error
                        channel.abort()
        if first_error is not None:
            raise first_error
        if aborted:
            raise TransferAborted("Ingestion stopped because the batch channel was aborted.")
        _LOGGER.info(
            "ingest_completed",
            delivered=report.delivered,
            duplicates=report.duplicates,
            dropped=report.dropped,
            retried=report.retried,
            batches=report.batches,
            parallelism=self._parallelism,
        )
        return report

    def _worker_loop(self, worker_id: int, channel: BatchChannel) -> IngestReport:
        tally = _WorkerTally()
        leftover: tuple[TransferRecord, ...] = ()
        while True:
            batch = channel.get()
            if batch is None:
                break
            leftover = self._submit(worker_id, (*batch, *leftover), tally)
        while leftover:
            if channel.aborted:
                raise TransferAborted(
                    "Leftover drain stopped because the batch channel was aborted."
                )
            _LOGGER.info("leftover_draining", worker=worker_id, record_count=len(leftover))
            if self._retry_delay > 0:
                time.sleep(self._retry_delay)
            leftover = self._submit(worker_id, leftover, tally)
        return tally.to_report()

    def _submit(
        self,
        worker_id: int,
        records: tuple[TransferRecord, ...],
        tally: _WorkerTally,
    ) -> tuple[TransferRecord, ...]:
        """Submit records once and return the subset to retry."""
        results = self._writer.bulk_create(records)
        outcome = classify_results(records, results)
        tally.batches += 1
        tally.delivered += outcome.delivered
        tally.duplicates += outcome.duplicates
        tally.retried += len(outcome.retry)
        for record, result in outcome.dropped:
            tally.dropped_ids.append(record.doc_id)
            _LOGGER.warning(
                "bulk_record_dropped",
                worker=worker_id,
                doc_id=record.doc_id,
                doc_type=record.doc_type,
                status=result.status,
                reason=result.reason,
            )
        _LOGGER.info(
            "bulk_submitted",
            worker=worker_id,
            submitted=len(records),
            delivered=outcome.delivered,
            leftover=len(outcome.retry),
            dropped=len(outcome.dropped),
        )
        return outcome.retry
