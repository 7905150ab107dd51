"""Estool CLI entry points.
This module exposes export, import, and copy commands for index transfers.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Sequence

from cli.transfer_command import add_transfer_commands, run_transfer_command
from core.config import EstoolConfig
from core.constants import SUPPORTED_LOG_LEVELS
from core.errors import EstoolConfigError
from core.logging_config import configure_logging
from transfer.transfer_sdk import EstoolClient


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="estool",
        description="Move search indexes between services and dump files",
    )
    parser.add_argument(
        "--log-level",
        choices=SUPPORTED_LOG_LEVELS,
        help="Override ESTOOL_LOG_LEVEL for this command",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_transfer_commands(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Estool CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.log_level)
    except EstoolConfigError as error:
        parser.error(str(error))
    if args.command in ("export", "import", "copy"):
        return run_transfer_command(client, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(log_level: str | None) -> EstoolClient:
    """Build SDK client with optional log-level override.

    Args:
        log_level: Optional override level.

    Returns:
        Configured SDK client.
    """
    config = EstoolConfig.from_env()
    if log_level:
        config = replace(config, log_level=log_level)
    configure_logging(config.log_level)
    return EstoolClient(config)
