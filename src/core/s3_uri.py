"""S3 URI parsing helpers.

This module centralizes S3 URI parsing for dump file endpoints.
It keeps URI validation behavior consistent across the codebase.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.constants import S3_SCHEME
from core.errors import EstoolConfigError


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 object location."""

    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"{S3_SCHEME}{self.bucket}/{self.key}"


def is_s3_uri(uri: str) -> bool:
    """Return whether a dump location points at S3."""
    return uri.startswith(S3_SCHEME)


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 object URI.

    Args:
        uri: URI in format ``s3://bucket/key``.

    Returns:
        Parsed bucket and key pair.

    Raises:
        EstoolConfigError: If bucket or key is missing.
    """
    stripped_uri = uri.removeprefix(S3_SCHEME)
    bucket, _, key = stripped_uri.partition("/")
    if not bucket or not key or key.endswith("/"):
        raise EstoolConfigError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/key. "
            "Provide both a bucket and an object key for the dump file."
        )
    return S3Location(bucket=bucket, key=key)
