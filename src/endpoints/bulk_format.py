"""Line format of bulk create operations.

Both the bulk endpoint body and the dump file use the same pair of lines
per document: a create header and the raw document JSON.
"""

from __future__ import annotations

import json

from core.constants import DUMP_ENCODING
from core.errors import EstoolDumpFormatError
from core.types import TransferRecord


def encode_create_header(record: TransferRecord) -> bytes:
    """Render ``{"create":{"_id":...,"_type":...}}`` for one record."""
    header = {"create": {"_id": record.doc_id, "_type": record.doc_type}}
    return json.dumps(header, separators=(",", ":"), ensure_ascii=False).encode(DUMP_ENCODING)


def encode_create_op(record: TransferRecord) -> bytes:
    """Render the header line and payload line of one record."""
    return encode_create_header(record) + b"\n" + record.payload + b"\n"


def decode_create_header(line: bytes, location: str) -> tuple[str, str]:
    """Parse a create header line into id and type.

    Args:
        line: Raw header line.
        location: Human-readable position used in error messages.

    Returns:
        Tuple of document id and collection name.

    Raises:
        EstoolDumpFormatError: If the line is not a create header.
    """
    try:
        payload = json.loads(line)
    except (json.JSONDecodeError, UnicodeDecodeError) as error:
        raise EstoolDumpFormatError(
            f"Invalid create header at {location}: {error}. "
            "Dump files alternate create header lines and document lines."
        ) from error
    create = payload.get("create") if isinstance(payload, dict) else None
    if not isinstance(create, dict):
        raise EstoolDumpFormatError(
            f"Invalid create header at {location}: expected a 'create' object."
        )
    doc_id = create.get("_id")
    doc_type = create.get("_type")
    if not isinstance(doc_id, str) or not isinstance(doc_type, str):
        raise EstoolDumpFormatError(
            f"Invalid create header at {location}: '_id' and '_type' must be strings."
        )
    return doc_id, doc_type
