"""Scan command argument parser for LocalSpace CLI."""

import argparse
from pathlib import Path
from typing import Any, cast

from localspace.core.config.indexing_config import IndexingConfig
from localspace.core.config.monitor_config import MonitorConfig

from . import add_common_arguments


def add_scan_subparser(subparsers: Any) -> argparse.ArgumentParser:
    """Add scan command subparser to the main parser.

    Args:
        subparsers: Subparsers object from the main argument parser

    Returns:
        The configured scan subparser
    """
    scan_parser = subparsers.add_parser(
        "scan",
        help="Rebuild the index for one or more paths",
        description=(
            "Clear the index, scan the given paths, classify every file and "
            "directory by deletion risk and optionally keep watching for changes."
        ),
    )

    scan_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Files or directories to scan",
    )

    add_common_arguments(scan_parser)
    IndexingConfig.add_cli_arguments(scan_parser)
    MonitorConfig.add_cli_arguments(scan_parser)

    return cast(argparse.ArgumentParser, scan_parser)


__all__: list[str] = ["add_scan_subparser"]
