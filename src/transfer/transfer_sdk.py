"""Python SDK for index transfers.

This module exposes high-level export, import, and copy operations that
open the right endpoints and run the transfer pipeline between them.
"""

from __future__ import annotations

from contextlib import ExitStack

from core.config import EstoolConfig
from core.types import IngestReport, TransferOptions
from endpoints.dump_file import DumpFileSink, DumpFileSource
from endpoints.elastic import ElasticEndpoint
from transfer.pipeline import run_transfer


class EstoolClient:
    """Primary SDK entry point for index transfers."""

    def __init__(self, config: EstoolConfig | None = None) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
        """
        self._config = config or EstoolConfig.from_env()

    @property
    def config(self) -> EstoolConfig:
        return self._config

    def export_index(self, options: TransferOptions) -> IngestReport:
        """Dump an index into a local or ``s3://`` file.

        Args:
            options: Transfer options; ``source_uri`` is an index URL and
                ``target_uri`` a dump location.

        Returns:
            Accounting of records written to the dump.

        Raises:
            EstoolError: If any stage of the transfer fails.
        """
        with ExitStack() as stack:
            source = stack.enter_context(ElasticEndpoint(options.source_uri, self._config))
            sink = stack.enter_context(DumpFileSink(options.target_uri, self._config))
            return run_transfer(source, sink, options, self._config)

    def import_index(self, options: TransferOptions) -> IngestReport:
        """Load a dump file into a new index.

        Args:
            options: Transfer options; ``source_uri`` is a dump location and
                ``target_uri`` an index URL.

        Returns:
            Accounting of records created in the index.

        Raises:
            EstoolError: If any stage of the transfer fails.
        """
        with ExitStack() as stack:
            source = stack.enter_context(DumpFileSource(options.source_uri, self._config))
            sink = stack.enter_context(ElasticEndpoint(options.target_uri, self._config))
            return run_transfer(source, sink, options, self._config)

    def copy_index(self, options: TransferOptions) -> IngestReport:
        """Copy one index into another, possibly on a different service.

        Raises:
            EstoolError: If any stage of the transfer fails.
        """
        with ExitStack() as stack:
            source = stack.enter_context(ElasticEndpoint(options.source_uri, self._config))
            sink = stack.enter_context(ElasticEndpoint(options.target_uri, self._config))
            return run_transfer(source, sink, options, self._config)
