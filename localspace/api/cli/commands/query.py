"""Query command module - read-only views over an existing index."""

import argparse
import os

from localspace.core.config.config import Config
from localspace.core.config.risk_config import load_risk_config
from localspace.services.risk_classifier import RiskClassifier
from localspace.services_factory import create_store

from ..utils.rich_output import RichOutputFormatter


async def files_command(args: argparse.Namespace, config: Config) -> None:
    formatter = RichOutputFormatter(verbose=args.verbose)
    store = create_store(config)
    try:
        offset = (args.page - 1) * args.page_size
        if args.sort == "date":
            files = store.get_files_by_modified(offset, args.page_size)
            title = f"Recently modified files (page {args.page})"
        else:
            files = store.get_files_by_size(offset, args.page_size)
            title = f"Largest files (page {args.page})"

        if not files:
            formatter.info("No files on this page")
            return
        formatter.files_table(files, title)
    finally:
        store.disconnect()


async def top_command(args: argparse.Namespace, config: Config) -> None:
    formatter = RichOutputFormatter(verbose=args.verbose)
    store = create_store(config)
    try:
        root = os.path.abspath(args.root) if args.root else None
        directories = store.get_top_directories(args.limit, root_prefix=root)
        if not directories:
            formatter.info("No directories indexed")
            return
        formatter.directories_table(directories, "Largest directories")
        formatter.warning(
            "Directory totals reflect the last full scan; live updates do not refresh them"
        )
    finally:
        store.disconnect()


async def cleanup_command(args: argparse.Namespace, config: Config) -> None:
    """List cleanup candidates using the risk config thresholds by default."""
    formatter = RichOutputFormatter(verbose=args.verbose)
    risk_config = load_risk_config(config.risk_config_path)
    min_size = args.min_size if args.min_size is not None else risk_config.large_file_threshold_bytes
    min_age = args.min_age_days if args.min_age_days is not None else risk_config.old_file_threshold_days

    store = create_store(config)
    try:
        files = store.get_large_old_files(min_size, min_age, args.limit)
        if not files:
            formatter.info("No cleanup candidates found")
            return
        formatter.files_table(files, f"Files >= {min_size:,} bytes untouched for {min_age} days")
    finally:
        store.disconnect()


async def stats_command(args: argparse.Namespace, config: Config) -> None:
    formatter = RichOutputFormatter(verbose=args.verbose)
    store = create_store(config)
    try:
        formatter.stats_panel(store.get_stats())
    finally:
        store.disconnect()


async def risk_command(args: argparse.Namespace, config: Config) -> None:
    formatter = RichOutputFormatter(verbose=args.verbose)
    classifier = RiskClassifier(config.risk_config_path)

    path = os.path.abspath(args.path)
    is_directory = args.directory or os.path.isdir(path)
    level, explanation = classifier.classify(path, is_directory=is_directory)
    category = "Directory" if is_directory else classifier.get_category(os.path.splitext(path)[1])
    formatter.risk_panel(path, level, explanation, category)
