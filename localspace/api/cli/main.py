"""CLI entry point for LocalSpace."""

import argparse
import asyncio
import sys

from loguru import logger
from pydantic import ValidationError

from localspace.core.config.config import Config


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI.

    Args:
        verbose: Whether to enable verbose logging
    """
    logger.remove()

    if verbose:
        logger.add(
            sys.stderr,
            level="DEBUG",
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level>"
            ),
        )
    else:
        logger.add(
            sys.stderr,
            level="INFO",
            format=(
                "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
                "<level>{message}</level>"
            ),
        )


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the complete argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    from .parsers import create_main_parser, setup_subparsers
    from .parsers.query_parser import add_query_subparsers
    from .parsers.scan_parser import add_scan_subparser

    parser = create_main_parser()
    subparsers = setup_subparsers(parser)

    add_scan_subparser(subparsers)
    add_query_subparsers(subparsers)

    return parser


async def async_main(argv: list[str] | None = None) -> None:
    """Async main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(getattr(args, "verbose", False))

    try:
        config = Config.from_cli_args(args)
    except (ValueError, ValidationError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    try:
        if args.command == "scan":
            from .commands.scan import scan_command

            await scan_command(args, config)
        else:
            from .commands import query

            commands = {
                "files": query.files_command,
                "top": query.top_command,
                "cleanup": query.cleanup_command,
                "stats": query.stats_command,
                "risk": query.risk_command,
            }
            command = commands.get(args.command)
            if command is None:
                logger.error(f"Unknown command: {args.command}")
                sys.exit(1)
            await command(args, config)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        logger.exception("Full error details:")
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
