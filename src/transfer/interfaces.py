"""Capability interfaces of transfer endpoints.

A transfer reads metadata and documents from a ``Source`` and writes them
to a ``Sink``. Concrete endpoints live in the ``endpoints`` package.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from core.index_metadata import IndexMetadata
from core.types import IngestReport
from transfer.channel import BatchChannel


class Source(Protocol):
    """Readable endpoint."""

    def get_index(self) -> IndexMetadata:
        """Read the index metadata, aliases cleared."""

    def stream_to(
        self,
        collections: Sequence[str],
        window: int,
        bulk_size: int,
        channel: BatchChannel,
    ) -> int:
        """Send every document as batches, then close the channel."""


class Sink(Protocol):
    """Writable endpoint."""

    def delete_index(self) -> None:
        """Remove the destination; no-op when it does not exist."""

    def put_index(
        self,
        metadata: IndexMetadata,
        replicas: int | None,
        shards: int | None,
    ) -> IndexMetadata:
        """Create the destination from metadata and return what was written."""

    def accept_from(self, parallelism: int, channel: BatchChannel) -> IngestReport:
        """Drain the channel into the destination."""

    def commit(self) -> None:
        """Make the written data final once the whole transfer succeeded."""
