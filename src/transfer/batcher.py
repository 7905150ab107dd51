"""Fixed-size batch accumulation.

The batcher groups transfer records into immutable batches of at most
``size`` records and hands each full batch to the channel.
"""

from __future__ import annotations

from core.errors import EstoolConfigError
from core.types import TransferRecord
from transfer.channel import BatchChannel


class Batcher:
    """Accumulate records and emit full batches to a channel.

    The batcher never closes the channel; that stays with the producer.
    """

    def __init__(self, size: int, channel: BatchChannel) -> None:
        if size < 1:
            raise EstoolConfigError(f"Invalid bulk size {size}: must be at least 1.")
        self._size = size
        self._channel = channel
        self._buffer: list[TransferRecord] = []
        self.emitted_batches = 0

    @property
    def size(self) -> int:
        return self._size

    def put(self, record: TransferRecord) -> None:
        """Buffer a record, emitting a batch when the buffer is full."""
        self._buffer.append(record)
        if len(self._buffer) >= self._size:
            self._emit()

    def flush(self) -> None:
        """Emit any partial buffer. No-op when empty."""
        if self._buffer:
            self._emit()

    def _emit(self) -> None:
        batch = tuple(self._buffer)
        self._buffer = []
        self._channel.put(batch)
        self.emitted_batches += 1
