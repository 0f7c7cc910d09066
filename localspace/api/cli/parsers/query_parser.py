"""Query command argument parsers for LocalSpace CLI."""

import argparse
from typing import Any

from . import add_common_arguments


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return number


def add_query_subparsers(subparsers: Any) -> None:
    """Add the read-only index commands: files, top, cleanup, stats and risk."""
    files_parser = subparsers.add_parser(
        "files", help="List indexed files ordered by size or modification date"
    )
    files_parser.add_argument(
        "--sort",
        choices=["size", "date"],
        default="size",
        help="Sort order (default: size)",
    )
    files_parser.add_argument("--page", type=_positive_int, default=1, help="Page number")
    files_parser.add_argument(
        "--page-size", type=_positive_int, default=50, help="Files per page (default: 50)"
    )
    add_common_arguments(files_parser)

    top_parser = subparsers.add_parser("top", help="Show the largest directories")
    top_parser.add_argument(
        "--limit", type=_positive_int, default=20, help="Number of directories (default: 20)"
    )
    top_parser.add_argument("--root", help="Only directories under this path prefix")
    add_common_arguments(top_parser)

    cleanup_parser = subparsers.add_parser(
        "cleanup", help="List large files that have not been modified in a long time"
    )
    cleanup_parser.add_argument(
        "--min-size", type=int, help="Minimum size in bytes (default: from risk config)"
    )
    cleanup_parser.add_argument(
        "--min-age-days", type=int, help="Minimum age in days (default: from risk config)"
    )
    cleanup_parser.add_argument(
        "--limit", type=_positive_int, default=50, help="Maximum files to list (default: 50)"
    )
    add_common_arguments(cleanup_parser)

    stats_parser = subparsers.add_parser("stats", help="Show index totals")
    add_common_arguments(stats_parser)

    risk_parser = subparsers.add_parser("risk", help="Classify a path by deletion risk")
    risk_parser.add_argument("path", help="Path to classify")
    risk_parser.add_argument(
        "--directory", action="store_true", help="Classify the path as a directory"
    )
    add_common_arguments(risk_parser)


__all__: list[str] = ["add_query_subparsers"]
