"""Transfer command wiring for the Estool CLI."""

from __future__ import annotations

import argparse
import sys
from typing import Any, Callable

from core.constants import DEFAULT_BULK_SIZE, DEFAULT_PARALLELISM, DEFAULT_WINDOW
from core.errors import EstoolError
from core.types import IngestReport, TransferOptions
from transfer.transfer_sdk import EstoolClient

_COMMAND_HELP = {
    "export": ("Dump an index into a file", "index URL", "dump path or s3:// URI"),
    "import": ("Load a dump file into a new index", "dump path or s3:// URI", "index URL"),
    "copy": ("Copy an index into another index", "source index URL", "target index URL"),
}


def add_transfer_commands(subparsers: Any) -> None:
    """Register export, import, and copy subcommands."""
    for command, (help_text, input_help, output_help) in _COMMAND_HELP.items():
        parser = subparsers.add_parser(command, help=help_text)
        parser.add_argument("--in", dest="input", required=True, help=f"Input {input_help}")
        parser.add_argument("--out", dest="output", required=True, help=f"Output {output_help}")
        parser.add_argument(
            "--force",
            action="store_true",
            help="Delete or overwrite the existing destination",
        )
        parser.add_argument(
            "--window",
            type=_positive_int,
            default=DEFAULT_WINDOW,
            help="Scroll page size",
        )
        parser.add_argument(
            "--bulk-size",
            type=_positive_int,
            default=DEFAULT_BULK_SIZE,
            help="Records per bulk request",
        )
        parser.add_argument(
            "--parallel",
            type=_positive_int,
            default=DEFAULT_PARALLELISM,
            help="Concurrent bulk ingest workers",
        )
        parser.add_argument(
            "--repls",
            type=_non_negative_int,
            help="Override the number of replicas of the destination index",
        )
        parser.add_argument(
            "--shards",
            type=_non_negative_int,
            help="Override the number of shards of the destination index",
        )


def run_transfer_command(client: EstoolClient, args: argparse.Namespace) -> int:
    """Execute one transfer command and print its accounting."""
    options = TransferOptions(
        source_uri=args.input,
        target_uri=args.output,
        force=args.force,
        window=args.window,
        bulk_size=args.bulk_size,
        parallelism=args.parallel,
        replicas=args.repls,
        shards=args.shards,
    )
    operations: dict[str, Callable[[TransferOptions], IngestReport]] = {
        "export": client.export_index,
        "import": client.import_index,
        "copy": client.copy_index,
    }
    try:
        report = operations[args.command](options)
    except EstoolError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    print(f"delivered={report.delivered}")
    print(f"duplicates={report.duplicates}")
    print(f"dropped={report.dropped}")
    print(f"retried={report.retried}")
    return 0


def _positive_int(raw_value: str) -> int:
    value = _parse_int(raw_value)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return value


def _non_negative_int(raw_value: str) -> int:
    value = _parse_int(raw_value)
    if value < 0:
        raise argparse.ArgumentTypeError(f"expected zero or a positive integer, got {value}")
    return value


def _parse_int(raw_value: str) -> int:
    try:
        return int(raw_value)
    except ValueError as error:
        raise argparse.ArgumentTypeError(f"expected an integer, got '{raw_value}'") from error
