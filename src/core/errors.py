"""Estool exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each transfer stage raises a specific error type for debuggability.
"""

from __future__ import annotations


class EstoolError(Exception):
    """Base exception for all Estool failures."""


class EstoolConfigError(EstoolError):
    """Raised for invalid runtime configuration or transfer options."""


class EstoolConnectionError(EstoolError):
    """Raised when an endpoint is unreachable or answers with an HTTP error."""


class EstoolMetadataError(EstoolError):
    """Raised for malformed index metadata."""


class EstoolCursorError(EstoolError):
    """Raised when a scroll cursor cannot be opened or advanced."""


class EstoolIngestError(EstoolError):
    """Raised when bulk ingestion must abort."""


class EstoolExtractError(EstoolError):
    """Raised by the orchestrator when the extraction producer failed."""


class EstoolDumpFormatError(EstoolError):
    """Raised for malformed dump files."""


class EstoolStoreError(EstoolError):
    """Raised for dump file storage failures, local or S3."""


class EstoolDependencyError(EstoolError):
    """Raised when an optional runtime dependency is missing."""


class TransferAborted(EstoolError):
    """Raised by an aborted batch channel to unblock its producer and consumers."""
