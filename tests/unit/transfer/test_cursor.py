"""Unit tests for the scroll cursor."""

from __future__ import annotations

import pytest

from core.errors import EstoolCursorError
from transfer.cursor import ScrollCursor
from tests.scroll_fakes import FakeScrollTransport, hits


def test_cursor_pages_until_first_empty_page() -> None:
    """Pages should follow the window size and stop at the first empty page."""
    transport = FakeScrollTransport({"book": hits("book", 5)})
    cursor = ScrollCursor(transport, "book", 2)

    sizes = [len(page) for page in cursor.pages()]

    assert sizes == [2, 2, 1]
    assert cursor.exhausted and transport.released == ["book-scroll"]


def test_cursor_handles_scan_style_empty_open_response() -> None:
    """An open response without hits should not end the scan."""
    transport = FakeScrollTransport({"book": hits("book", 3)}, first_page_in_open=False)
    cursor = ScrollCursor(transport, "book", 2)

    first_page = cursor.next_page()

    assert [hit["_id"] for hit in first_page] == ["book-0", "book-1"]


def test_cursor_rejects_use_after_exhaustion() -> None:
    """Calling next_page after the terminal empty page is an error."""
    transport = FakeScrollTransport({"book": []})
    cursor = ScrollCursor(transport, "book", 10)

    assert cursor.next_page() == []
    with pytest.raises(EstoolCursorError):
        cursor.next_page()


def test_cursor_open_failure_is_cursor_error() -> None:
    """A scan that cannot be opened should propagate as a cursor error."""
    transport = FakeScrollTransport({}, failing_collections=("ghost",))

    with pytest.raises(EstoolCursorError):
        ScrollCursor(transport, "ghost", 10)
