"""Argument parsers for the LocalSpace CLI."""

import argparse
from pathlib import Path
from typing import Any

from localspace.core.config.database_config import DatabaseConfig
from localspace.version import __version__


def create_main_parser() -> argparse.ArgumentParser:
    """Create the top-level parser."""
    parser = argparse.ArgumentParser(
        prog="localspace",
        description="Index local disk usage, classify deletion risk and keep the index live.",
    )
    parser.add_argument(
        "--version", action="version", version=f"localspace {__version__}"
    )
    return parser


def setup_subparsers(parser: argparse.ArgumentParser) -> Any:
    return parser.add_subparsers(dest="command", help="Available commands")


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    """Arguments shared by every command."""
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Configuration file path",
    )
    parser.add_argument(
        "--risk-config",
        type=Path,
        help="Risk rule file (default: ~/.localspace/risk_config.json)",
    )
    DatabaseConfig.add_cli_arguments(parser)


__all__ = ["add_common_arguments", "create_main_parser", "setup_subparsers"]
