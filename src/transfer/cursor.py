"""Server-side scroll cursor.

This module wraps one open scroll over one collection. Pages are pulled
through a ``ScrollTransport`` so the cursor logic is independent of the
HTTP plumbing of a particular endpoint.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Protocol

from core.errors import EstoolConnectionError, EstoolCursorError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class ScrollPage:
    """One page returned by the scroll endpoint.

    Attributes:
        scroll_id: Token to use for the following request.
        hits: Raw hit objects, each with ``_id`` and ``_source``.
    """

    scroll_id: str
    hits: tuple[dict[str, Any], ...]


class ScrollTransport(Protocol):
    """Endpoint operations needed to drive a scroll."""

    def open_scroll(self, collection: str, window: int) -> ScrollPage:
        """Start a scan over one collection."""

    def continue_scroll(self, scroll_id: str) -> ScrollPage:
        """Fetch the page following ``scroll_id``."""

    def release_scroll(self, scroll_id: str) -> None:
        """Free server-side scroll state."""


class ScrollCursor:
    """Single-use paginated reader over one collection.

    ``next_page`` consumes server-side state and returns an empty page
    exactly once, after which the cursor is exhausted.
    """

    def __init__(self, transport: ScrollTransport, collection: str, window: int) -> None:
        if window < 1:
            raise EstoolCursorError(f"Invalid scroll window {window}: must be at least 1.")
        self._transport = transport
        self._collection = collection
        try:
            first_page = transport.open_scroll(collection, window)
        except EstoolConnectionError as error:
            raise EstoolCursorError(
                f"Failed to open scroll over collection '{collection}': {error}"
            ) from error
        self._scroll_id = first_page.scroll_id
        self._pending: tuple[dict[str, Any], ...] | None = first_page.hits
        self._exhausted = False

    @property
    def collection(self) -> str:
        return self._collection

    @property
    def exhausted(self) -> bool:
        return self._exhausted

    def next_page(self) -> list[dict[str, Any]]:
        """Return the next page of hits; an empty list ends the scan.

        Raises:
            EstoolCursorError: If called after exhaustion or if pagination fails.
        """
        if self._exhausted:
            raise EstoolCursorError(
                f"Scroll over collection '{self._collection}' is already exhausted."
            )
        if self._pending:
            hits = self._pending
            self._pending = None
            return list(hits)
        self._pending = None
        try:
            page = self._transport.continue_scroll(self._scroll_id)
        except EstoolConnectionError as error:
            raise EstoolCursorError(
                f"Failed to fetch next page of collection '{self._collection}': {error}"
            ) from error
        self._scroll_id = page.scroll_id or self._scroll_id
        if not page.hits:
            self._exhausted = True
            self._release()
        return list(page.hits)

    def pages(self) -> Iterator[list[dict[str, Any]]]:
        """Yield non-empty pages until the scan is exhausted."""
        while True:
            page = self.next_page()
            if not page:
                return
            yield page

    def _release(self) -> None:
        try:
            self._transport.release_scroll(self._scroll_id)
        except EstoolConnectionError as error:
            _LOGGER.warning(
                "scroll_release_failed",
                collection=self._collection,
                error=str(error),
            )
