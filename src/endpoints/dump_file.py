"""Line-oriented dump file endpoint.

A dump file holds the index metadata blob on its first line, followed by
one create header line and one document line per record. Dumps live on
the local filesystem or, through a staging file, in S3.
"""

from __future__ import annotations

import os
from pathlib import Path
import tempfile
from typing import Any, BinaryIO, Iterator, Sequence

from core.config import EstoolConfig
from core.errors import EstoolConfigError, EstoolDumpFormatError, EstoolStoreError
from core.index_metadata import IndexMetadata, parse_index_metadata
from core.logging_config import get_logger
from core.s3_uri import S3Location, is_s3_uri, parse_s3_uri
from core.types import IngestReport, TransferRecord
from endpoints.bulk_format import decode_create_header, encode_create_op
from endpoints.s3_staging import (
    create_s3_client,
    delete_dump,
    download_dump,
    object_exists,
    upload_dump,
)
from transfer.batcher import Batcher
from transfer.channel import BatchChannel

_LOGGER = get_logger(__name__)


class _DumpLocation:
    """Local path of a dump, staged through a temp file for S3 URIs."""

    def __init__(self, uri: str, config: EstoolConfig, s3_client: Any | None) -> None:
        self.uri = uri
        self._config = config
        self._s3_client = s3_client
        self.s3_location: S3Location | None = parse_s3_uri(uri) if is_s3_uri(uri) else None
        self._staging_path: Path | None = None

    @property
    def s3_client(self) -> Any:
        if self._s3_client is None:
            self._s3_client = create_s3_client(self._config)
        return self._s3_client

    def local_path(self) -> Path:
        if self.s3_location is None:
            return Path(self.uri).expanduser()
        if self._staging_path is None:
            handle, staging_name = tempfile.mkstemp(prefix="estool-", suffix=".dump")
            os.close(handle)
            self._staging_path = Path(staging_name)
        return self._staging_path

    def exists(self) -> bool:
        if self.s3_location is None:
            return self.local_path().exists()
        return object_exists(self.s3_client, self.s3_location)

    def delete(self) -> None:
        if self.s3_location is None:
            self.local_path().unlink(missing_ok=True)
            return
        delete_dump(self.s3_client, self.s3_location)

    def fetch(self) -> Path:
        """Return a readable local path, downloading S3 dumps first."""
        path = self.local_path()
        if self.s3_location is not None:
            download_dump(self.s3_client, self.s3_location, path)
        return path

    def publish(self) -> None:
        """Upload the staged dump when the target is in S3."""
        if self.s3_location is not None:
            upload_dump(self.s3_client, self.local_path(), self.s3_location)

    def cleanup(self) -> None:
        if self._staging_path is not None:
            self._staging_path.unlink(missing_ok=True)
            self._staging_path = None


class DumpFileSource:
    """Transfer source reading a dump file."""

    def __init__(
        self,
        uri: str,
        config: EstoolConfig,
        s3_client: Any | None = None,
    ) -> None:
        self._location = _DumpLocation(uri, config, s3_client)
        self._handle: BinaryIO | None = None

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        self._location.cleanup()

    def __enter__(self) -> "DumpFileSource":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_index(self) -> IndexMetadata:
        """Open the dump and parse its metadata line.

        Raises:
            EstoolStoreError: If the dump cannot be opened.
            EstoolDumpFormatError: If the dump is empty.
            EstoolMetadataError: If the metadata line is malformed.
        """
        path = self._location.fetch()
        try:
            self._handle = path.open("rb")
        except OSError as error:
            raise EstoolStoreError(
                f"Failed to open dump {self._location.uri}: {error.strerror}. "
                "Provide an existing dump file."
            ) from error
        first_line = self._handle.readline()
        if not first_line.strip():
            raise EstoolDumpFormatError(
                f"Dump {self._location.uri} is empty: expected index metadata on line 1."
            )
        metadata = parse_index_metadata(first_line).without_aliases()
        _LOGGER.info(
            "index_metadata_read",
            dump=self._location.uri,
            index=metadata.index_name,
            collections=list(metadata.collections),
        )
        return metadata

    def stream_to(
        self,
        collections: Sequence[str],
        window: int,
        bulk_size: int,
        channel: BatchChannel,
    ) -> int:
        """Send every record of the dump as batches, then close the channel.

        Collections and window only apply to scroll sources; a dump is read
        front to back.
        """
        try:
            if self._handle is None:
                raise EstoolConfigError("Dump metadata must be read with get_index() first.")
            batcher = Batcher(bulk_size, channel)
            total = 0
            for record in _iter_records(self._handle, self._location.uri):
                batcher.put(record)
                total += 1
            batcher.flush()
        finally:
            channel.close()
            self.close()
        _LOGGER.info("dump_read_completed", dump=self._location.uri, record_count=total)
        return total


class DumpFileSink:
    """Transfer sink writing a dump file."""

    def __init__(
        self,
        uri: str,
        config: EstoolConfig,
        s3_client: Any | None = None,
    ) -> None:
        self._location = _DumpLocation(uri, config, s3_client)
        self._handle: BinaryIO | None = None
        self._created = False
        self._committed = False

    def close(self) -> None:
        """Release the dump; a created but uncommitted local dump is removed."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None
        if self._created and not self._committed and self._location.s3_location is None:
            self._location.local_path().unlink(missing_ok=True)
            _LOGGER.warning("dump_discarded", dump=self._location.uri, reason="uncommitted")
        self._location.cleanup()

    def __enter__(self) -> "DumpFileSink":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def delete_index(self) -> None:
        """Remove an existing dump; a missing dump is not an error."""
        self._location.delete()
        _LOGGER.info("dump_deleted", dump=self._location.uri)

    def put_index(
        self,
        metadata: IndexMetadata,
        replicas: int | None,
        shards: int | None,
    ) -> IndexMetadata:
        """Create the dump and write its metadata line.

        Raises:
            EstoolConfigError: If the dump already exists.
            EstoolStoreError: If the dump cannot be created.
        """
        if self._location.exists():
            raise EstoolConfigError(
                f"Dump {self._location.uri} already exists. Use --force to overwrite it."
            )
        prepared = metadata.prepare_for_write(replicas=replicas, shards=shards)
        path = self._location.local_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = path.open("wb")
            self._created = True
            self._handle.write(prepared.to_blob().encode("utf-8") + b"\n")
        except OSError as error:
            raise EstoolStoreError(
                f"Failed to create dump {self._location.uri}: {error.strerror}."
            ) from error
        return prepared

    def accept_from(self, parallelism: int, channel: BatchChannel) -> IngestReport:
        """Append every batch to the dump with a single writer.

        Parallelism does not apply to a file; records are written in the
        order batches arrive.
        """
        if self._handle is None:
            raise EstoolConfigError("Dump metadata must be written with put_index() first.")
        delivered = 0
        batches = 0
        try:
            for batch in channel:
                for record in batch:
                    self._handle.write(encode_create_op(record))
                delivered += len(batch)
                batches += 1
            self._handle.close()
            self._handle = None
        except OSError as error:
            raise EstoolStoreError(
                f"Failed to write dump {self._location.uri}: {error.strerror}."
            ) from error
        _LOGGER.info(
            "dump_write_completed",
            dump=self._location.uri,
            record_count=delivered,
            batch_count=batches,
        )
        return IngestReport(delivered=delivered, batches=batches)

    def commit(self) -> None:
        """Publish the finished dump, uploading it for S3 targets."""
        if self._handle is not None or not self._created:
            raise EstoolConfigError("Dump must be fully written before it is committed.")
        self._location.publish()
        self._committed = True
        _LOGGER.info("dump_committed", dump=self._location.uri)


def _iter_records(handle: BinaryIO, uri: str) -> Iterator[TransferRecord]:
    """Yield records from header/document line pairs after the metadata line."""
    header: tuple[str, str] | None = None
    for line_number, line in enumerate(handle, start=2):
        if header is None:
            if not line.strip():
                continue
            header = decode_create_header(line, f"{uri}:{line_number}")
            continue
        doc_id, doc_type = header
        yield TransferRecord(doc_id=doc_id, doc_type=doc_type, payload=line.rstrip(b"\r\n"))
        header = None
    if header is not None:
        raise EstoolDumpFormatError(
            f"Dump {uri} ends after the create header of '{header[0]}': document line missing."
        )
