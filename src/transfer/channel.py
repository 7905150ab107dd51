"""Bounded batch channel between the extractor and ingest workers.

The channel is the only synchronization point of a transfer. Producers
block while it is full, consumers block while it is empty. Closing is a
one-way signal seen by every consumer; aborting unblocks everybody with
``TransferAborted``.
"""

from __future__ import annotations

import queue
import threading
from typing import Iterator

from core.constants import CHANNEL_POLL_SECONDS
from core.errors import EstoolConfigError, TransferAborted
from core.types import Batch

_CLOSED = object()


class BatchChannel:
    """Closable, abortable bounded queue of batches."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise EstoolConfigError(
                f"Invalid channel capacity {capacity}: must be at least 1."
            )
        self._queue: queue.Queue[object] = queue.Queue(maxsize=capacity)
        self._aborted = threading.Event()
        self._close_lock = threading.Lock()
        self._closed = False

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    def pending(self) -> int:
        """Return the number of queued batches (approximate)."""
        return self._queue.qsize()

    def put(self, batch: Batch) -> None:
        """Send one batch, blocking while the channel is full.

        Raises:
            EstoolConfigError: If the channel was already closed.
            TransferAborted: If the channel is aborted while waiting.
        """
        if self._closed:
            raise EstoolConfigError("Cannot send a batch on a closed channel.")
        self._blocking_put(batch)

    def close(self) -> None:
        """Mark the end of the stream. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        if self._aborted.is_set():
            return
        try:
            self._blocking_put(_CLOSED)
        except TransferAborted:
            return

    def get(self) -> Batch | None:
        """Receive the next batch, or None once the channel is closed.

        Raises:
            TransferAborted: If the channel is aborted while waiting.
        """
        while True:
            if self._aborted.is_set():
                raise TransferAborted("Batch channel was aborted.")
            try:
                item = self._queue.get(timeout=CHANNEL_POLL_SECONDS)
            except queue.Empty:
                continue
            if item is _CLOSED:
                # Nothing is sent after the close marker, so there is room to
                # hand it on to the next consumer.
                self._queue.put_nowait(_CLOSED)
                return None
            return item  # type: ignore[return-value]

    def abort(self) -> None:
        """Wake every blocked producer and consumer with ``TransferAborted``."""
        self._aborted.set()

    def __iter__(self) -> Iterator[Batch]:
        while True:
            batch = self.get()
            if batch is None:
                return
            yield batch

    def _blocking_put(self, item: object) -> None:
        while True:
            if self._aborted.is_set():
                raise TransferAborted("Batch channel was aborted.")
            try:
                self._queue.put(item, timeout=CHANNEL_POLL_SECONDS)
                return
            except queue.Full:
                continue
