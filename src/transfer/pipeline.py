"""Transfer orchestration.

This module wires one source against one sink: metadata first, then a
producer thread streaming batches into a bounded channel while the
sink drains it on the calling thread.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import time

from core.config import EstoolConfig
from core.errors import EstoolError, EstoolExtractError, TransferAborted
from core.logging_config import get_logger
from core.types import IngestReport, TransferOptions
from transfer.channel import BatchChannel
from transfer.interfaces import Sink, Source

_LOGGER = get_logger(__name__)


def run_transfer(
    source: Source,
    sink: Sink,
    options: TransferOptions,
    config: EstoolConfig,
) -> IngestReport:
    """Copy metadata and all documents from source to sink.

    The sink is only committed after both sides finished, so a failed
    transfer never publishes a partial dump.

    Args:
        source: Endpoint to read from.
        sink: Endpoint to write to.
        options: Transfer options.
        config: Runtime configuration.

    Returns:
        Ingest accounting for the whole transfer.

    Raises:
        EstoolExtractError: If the producer failed; already-sent batches
            were still ingested.
        EstoolError: For metadata, connection, and ingest failures.
    """
    started_at = time.monotonic()
    _LOGGER.info(
        "transfer_started",
        source=options.source_uri,
        target=options.target_uri,
        force=options.force,
        window=options.window,
        bulk_size=options.bulk_size,
        parallelism=options.parallelism,
    )
    metadata = source.get_index()
    if options.force:
        sink.delete_index()
    written = sink.put_index(metadata, options.replicas, options.shards)
    channel = BatchChannel(config.channel_capacity)
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="estool-extract") as pool:
        producer = pool.submit(
            _produce,
            source,
            written.collections,
            options.window,
            options.bulk_size,
            channel,
        )
        try:
            report = sink.accept_from(options.parallelism, channel)
        except BaseException:
            channel.abort()
            raise
        try:
            extracted = producer.result()
        except TransferAborted as error:
            raise EstoolExtractError(f"Extraction was aborted: {error}") from error
        except EstoolError as error:
            raise EstoolExtractError(
                f"Extraction from {options.source_uri} failed after "
                f"{report.delivered} records were delivered: {error}"
            ) from error
    sink.commit()
    _LOGGER.info(
        "transfer_completed",
        index=written.index_name,
        extracted=extracted,
        delivered=report.delivered,
        duplicates=report.duplicates,
        dropped=report.dropped,
        elapsed_seconds=round(time.monotonic() - started_at, 3),
    )
    return report


def _produce(
    source: Source,
    collections: tuple[str, ...],
    window: int,
    bulk_size: int,
    channel: BatchChannel,
) -> int:
    """Run the source producer, closing the channel whatever happens."""
    try:
        return source.stream_to(collections, window, bulk_size, channel)
    finally:
        channel.close()
