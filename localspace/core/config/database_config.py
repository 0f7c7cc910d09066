"""Database configuration for LocalSpace."""

import argparse
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

MEMORY_DATABASE = ":memory:"


def _default_database_path() -> Path:
    return Path.home() / ".localspace" / "index.duckdb"


class DatabaseConfig(BaseModel):
    """Where and how the index is persisted."""

    path: Path = Field(
        default_factory=_default_database_path,
        description="DuckDB database file (':memory:' for an in-memory index)",
    )
    provider: Literal["duckdb"] = Field(
        default="duckdb", description="Database provider"
    )
    checkpoint_threshold: int = Field(
        default=100, description="Write operations between automatic checkpoints"
    )

    @field_validator("checkpoint_threshold")
    def validate_checkpoint_threshold(cls, v: int) -> int:
        if v < 1:
            raise ValueError("checkpoint_threshold must be positive")
        return v

    @property
    def is_memory(self) -> bool:
        return str(self.path) == MEMORY_DATABASE

    def get_db_path(self) -> Path | str:
        """Path argument for the connection manager."""
        if self.is_memory:
            return MEMORY_DATABASE
        return self.path.expanduser()

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add database-related CLI arguments."""
        parser.add_argument(
            "--db",
            type=Path,
            help="Database file path (default: ~/.localspace/index.duckdb)",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load database config from environment variables."""
        config: dict[str, Any] = {}
        if db_path := os.getenv("LOCALSPACE_DATABASE__PATH"):
            config["path"] = db_path
        if threshold := os.getenv("LOCALSPACE_DATABASE__CHECKPOINT_THRESHOLD"):
            try:
                config["checkpoint_threshold"] = int(threshold)
            except ValueError:
                pass
        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract database config from CLI arguments."""
        overrides: dict[str, Any] = {}
        if getattr(args, "db", None):
            overrides["path"] = args.db
        return overrides
