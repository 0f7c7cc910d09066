"""Indexing configuration for LocalSpace.

Controls the initial scan: traversal options, batch sizes for store writes
and progress reporting cadence.
"""

import argparse
import os
from typing import Any

from pydantic import BaseModel, Field, field_validator


class IndexingConfig(BaseModel):
    """Configuration for the initial scan and its persistence phases."""

    file_batch_size: int = Field(
        default=2000, description="File records per store transaction"
    )
    directory_batch_size: int = Field(
        default=1000, description="Directory records per store transaction"
    )
    progress_interval: int = Field(
        default=500, description="Files between progress snapshots"
    )
    initial_estimate: int = Field(
        default=100_000, description="Seed for the total file count estimate"
    )
    follow_symlinks: bool = Field(
        default=False, description="Descend into symlinked directories"
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns matched against entry names to skip",
    )

    @field_validator(
        "file_batch_size", "directory_batch_size", "progress_interval", "initial_estimate"
    )
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be positive")
        return v

    @field_validator("exclude")
    def validate_patterns(cls, v: list[str]) -> list[str]:
        """Drop duplicates while preserving order."""
        seen = set()
        unique = []
        for pattern in v:
            if pattern not in seen:
                seen.add(pattern)
                unique.append(pattern)
        return unique

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add indexing-related CLI arguments."""
        parser.add_argument(
            "--exclude",
            action="append",
            help="Entry name patterns to skip (can be specified multiple times)",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="File records per database transaction (default: 2000)",
        )
        parser.add_argument(
            "--follow-symlinks",
            action="store_true",
            help="Descend into symlinked directories",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load indexing config from environment variables."""
        config: dict[str, Any] = {}
        if batch_size := os.getenv("LOCALSPACE_INDEXING__FILE_BATCH_SIZE"):
            try:
                config["file_batch_size"] = int(batch_size)
            except ValueError:
                pass
        if dir_batch := os.getenv("LOCALSPACE_INDEXING__DIRECTORY_BATCH_SIZE"):
            try:
                config["directory_batch_size"] = int(dir_batch)
            except ValueError:
                pass
        if follow := os.getenv("LOCALSPACE_INDEXING__FOLLOW_SYMLINKS"):
            config["follow_symlinks"] = follow.lower() in ("true", "1", "yes")
        if exclude := os.getenv("LOCALSPACE_INDEXING__EXCLUDE"):
            config["exclude"] = exclude.split(",")
        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract indexing config from CLI arguments."""
        overrides: dict[str, Any] = {}
        if getattr(args, "exclude", None):
            overrides["exclude"] = args.exclude
        if getattr(args, "batch_size", None) is not None:
            overrides["file_batch_size"] = args.batch_size
        if getattr(args, "follow_symlinks", False):
            overrides["follow_symlinks"] = True
        return overrides
