"""Scan command module - rebuilds the index and optionally keeps it live."""

import argparse
import asyncio
import sys

from loguru import logger

from localspace.core.config.config import Config
from localspace.core.exceptions import IndexingError
from localspace.services_factory import create_services
from localspace.version import __version__

from ..utils.rich_output import RichOutputFormatter


async def scan_command(args: argparse.Namespace, config: Config) -> None:
    """Execute the scan command.

    Args:
        args: Parsed command-line arguments
        config: Loaded configuration
    """
    formatter = RichOutputFormatter(verbose=args.verbose)
    missing = [path for path in args.paths if not path.exists()]
    for path in missing:
        formatter.error(f"Path does not exist: {path}")
    if missing:
        sys.exit(1)

    roots = [str(path.resolve()) for path in args.paths]

    formatter.startup_info(__version__, roots, str(config.database.get_db_path()))

    services = create_services(config)
    orchestrator = services.orchestrator
    services.monitor.add_error_listener(
        lambda message, error: formatter.warning(f"Watcher: {message}")
    )

    try:
        with formatter.create_scan_progress() as display:
            orchestrator.add_progress_listener(display.update)
            summary = await orchestrator.initial_scan(roots)

        formatter.completion_summary(summary)

        if summary.cancelled or not config.monitor.enabled:
            return

        formatter.info("Watching for changes. Press Ctrl+C to stop.")
        await asyncio.Event().wait()

    except IndexingError as e:
        formatter.error(str(e))
        logger.debug(f"Scan error details: {e.__cause__!r}")
        sys.exit(1)
    finally:
        await orchestrator.close()
        stats = orchestrator.get_stats()
        if config.monitor.enabled:
            formatter.verbose_info(
                f"Live updates: {stats['applied']} applied, "
                f"{stats['dropped']} dropped, {stats['failed']} failed"
            )
        services.close()
