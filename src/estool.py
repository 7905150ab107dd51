"""Public SDK surface for Estool.

This module provides a stable import path for library users.
It re-exports the primary client and typed option models.
"""

from __future__ import annotations

from core.config import EstoolConfig
from core.errors import EstoolError
from core.index_metadata import IndexMetadata, parse_index_metadata
from core.types import IngestReport, TransferOptions, TransferRecord
from transfer.pipeline import run_transfer
from transfer.transfer_sdk import EstoolClient

__all__ = [
    "EstoolClient",
    "EstoolConfig",
    "EstoolError",
    "IndexMetadata",
    "IngestReport",
    "TransferOptions",
    "TransferRecord",
    "parse_index_metadata",
    "run_transfer",
]
