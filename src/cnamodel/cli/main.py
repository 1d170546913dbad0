"""
Command line entry point.

Usage:
    cnamodel <command> [args]
"""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from cnamodel import __version__
from cnamodel.cli.export import (
    handle_export_command,
    handle_validate_command,
    register_export_parser,
)
from cnamodel.config import get_settings
from cnamodel.logging import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cnamodel",
        description="Export cloud-native architecture models as TOSCA service templates",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: WARNING, or CNAMODEL_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command")
    register_export_parser(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging((args.log_level or get_settings().log_level).upper())

    if args.command == "export":
        sys.exit(handle_export_command(args))

    if args.command == "validate":
        sys.exit(handle_validate_command(args))

    parser.print_help()
    sys.exit(2)


if __name__ == "__main__":
    main()
