"""S3 staging helpers for dump files.

Dump files addressed by ``s3://`` URIs are read from and written to a
local staging file; this module moves that file to and from S3.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from core.config import EstoolConfig
from core.errors import EstoolDependencyError, EstoolStoreError
from core.logging_config import get_logger
from core.s3_uri import S3Location

_LOGGER = get_logger(__name__)
_MISSING_OBJECT_CODES = ("404", "NoSuchKey", "NotFound")


def create_s3_client(config: EstoolConfig) -> Any:
    """Create boto3 S3 client for dump files.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        EstoolDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise EstoolDependencyError(
            "S3 dump files require boto3, but it is not installed. "
            "Install boto3 to export to or import from s3:// locations."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def object_exists(s3_client: Any, location: S3Location) -> bool:
    """Return whether the dump object already exists."""
    try:
        s3_client.head_object(Bucket=location.bucket, Key=location.key)
    except Exception as error:
        if _error_code(error) in _MISSING_OBJECT_CODES:
            return False
        raise EstoolStoreError(
            f"Failed to check {location.uri}: {error}. Check AWS credentials and retry."
        ) from error
    return True


def download_dump(s3_client: Any, location: S3Location, local_path: Path) -> None:
    """Download a dump object into a local staging file.

    Raises:
        EstoolStoreError: If the download fails.
    """
    try:
        s3_client.download_file(location.bucket, location.key, str(local_path))
    except Exception as error:
        raise EstoolStoreError(
            f"Failed to download dump {location.uri}: {error}. "
            "Check the object exists and AWS credentials are valid."
        ) from error
    _LOGGER.info("dump_downloaded", uri=location.uri, local_path=str(local_path))


def upload_dump(s3_client: Any, local_path: Path, location: S3Location) -> None:
    """Upload a finished staging file as the dump object.

    Raises:
        EstoolStoreError: If the upload fails.
    """
    try:
        s3_client.upload_file(str(local_path), location.bucket, location.key)
    except Exception as error:
        raise EstoolStoreError(
            f"Failed to upload dump {local_path} to {location.uri}: {error}. "
            "Check AWS credentials and retry export."
        ) from error
    _LOGGER.info("dump_uploaded", uri=location.uri, size_bytes=local_path.stat().st_size)


def delete_dump(s3_client: Any, location: S3Location) -> None:
    """Delete the dump object; deleting a missing object succeeds."""
    try:
        s3_client.delete_object(Bucket=location.bucket, Key=location.key)
    except Exception as error:
        raise EstoolStoreError(f"Failed to delete dump {location.uri}: {error}.") from error


def _error_code(error: Exception) -> str:
    response = getattr(error, "response", None)
    if not isinstance(response, dict):
        return ""
    return str(response.get("Error", {}).get("Code", ""))
