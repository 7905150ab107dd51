"""Unit tests for the bounded batch channel."""

from __future__ import annotations

import threading
import time

import pytest

from core.errors import EstoolConfigError, TransferAborted
from core.types import TransferRecord
from transfer.channel import BatchChannel


def _batch(doc_id: str) -> tuple[TransferRecord, ...]:
    return (TransferRecord(doc_id=doc_id, doc_type="book", payload=b"{}"),)


def test_producer_blocks_once_channel_is_full() -> None:
    """Without a consumer the producer should stall after capacity batches."""
    channel = BatchChannel(capacity=2)
    sent: list[str] = []

    def _produce() -> None:
        for index in range(5):
            channel.put(_batch(f"doc-{index}"))
            sent.append(f"doc-{index}")
        channel.close()

    producer = threading.Thread(target=_produce, daemon=True)
    producer.start()
    time.sleep(0.3)

    assert producer.is_alive()
    assert channel.pending() == 2 and len(sent) == 2

    received = [batch[0].doc_id for batch in channel]
    producer.join(timeout=2)

    assert received == [f"doc-{index}" for index in range(5)]


def test_close_is_seen_by_every_consumer() -> None:
    """All consumers should observe the end of the stream."""
    channel = BatchChannel(capacity=4)
    channel.put(_batch("doc-1"))
    channel.close()
    results: list[object] = []

    def _consume() -> None:
        results.extend(list(channel))
        results.append("done")

    consumers = [threading.Thread(target=_consume) for _ in range(3)]
    for consumer in consumers:
        consumer.start()
    for consumer in consumers:
        consumer.join(timeout=2)

    assert results.count("done") == 3
    assert len([item for item in results if item != "done"]) == 1


def test_close_twice_is_harmless() -> None:
    """Closing an already closed channel should be a no-op."""
    channel = BatchChannel(capacity=1)
    channel.close()
    channel.close()

    assert channel.get() is None


def test_put_after_close_is_rejected() -> None:
    """Sending on a closed channel is a programming error."""
    channel = BatchChannel(capacity=1)
    channel.close()

    with pytest.raises(EstoolConfigError):
        channel.put(_batch("doc-1"))


def test_abort_unblocks_waiting_producer() -> None:
    """Aborting should release a producer stuck on a full channel."""
    channel = BatchChannel(capacity=1)
    channel.put(_batch("doc-1"))
    errors: list[BaseException] = []

    def _produce() -> None:
        try:
            channel.put(_batch("doc-2"))
        except TransferAborted as error:
            errors.append(error)

    producer = threading.Thread(target=_produce)
    producer.start()
    time.sleep(0.2)
    channel.abort()
    producer.join(timeout=2)

    assert len(errors) == 1 and channel.aborted


def test_abort_unblocks_waiting_consumer() -> None:
    """Aborting should release a consumer waiting on an empty channel."""
    channel = BatchChannel(capacity=1)
    channel.abort()

    with pytest.raises(TransferAborted):
        channel.get()


def test_channel_rejects_zero_capacity() -> None:
    """A channel needs room for at least one batch."""
    with pytest.raises(EstoolConfigError):
        BatchChannel(capacity=0)
