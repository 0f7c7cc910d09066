"""Change monitoring configuration for LocalSpace."""

import argparse
import os
from typing import Any

from pydantic import BaseModel, Field, field_validator


class MonitorConfig(BaseModel):
    """Configuration for live filesystem monitoring and update handling."""

    enabled: bool = Field(
        default=True, description="Start monitoring after the initial scan"
    )
    debounce_ms: int = Field(
        default=500, description="Suppress repeat events for a path within this window"
    )
    prune_after_seconds: float = Field(
        default=5.0, description="Forget debounce timestamps older than this"
    )
    prune_interval_seconds: float = Field(
        default=1.0, description="Minimum time between debounce table prunes"
    )
    settle_delay_ms: int = Field(
        default=100, description="Wait before re-reading a changed file"
    )
    queue_size: int = Field(
        default=1000, description="Capacity of the change event channel"
    )
    put_timeout_seconds: float = Field(
        default=1.0, description="How long the watcher thread waits for queue space"
    )

    @field_validator("debounce_ms", "settle_delay_ms")
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("value must not be negative")
        return v

    @field_validator("queue_size")
    def validate_queue_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("queue_size must be positive")
        return v

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def settle_delay_seconds(self) -> float:
        return self.settle_delay_ms / 1000.0

    @classmethod
    def add_cli_arguments(cls, parser: argparse.ArgumentParser) -> None:
        """Add monitoring-related CLI arguments."""
        parser.add_argument(
            "--watch",
            action="store_true",
            help="Keep monitoring the scanned paths after the initial scan",
        )
        parser.add_argument(
            "--debounce-ms",
            type=int,
            default=None,
            help="Debounce window for repeated change events (default: 500)",
        )

    @classmethod
    def load_from_env(cls) -> dict[str, Any]:
        """Load monitor config from environment variables."""
        config: dict[str, Any] = {}
        if enabled := os.getenv("LOCALSPACE_MONITOR__ENABLED"):
            config["enabled"] = enabled.lower() in ("true", "1", "yes")
        if debounce := os.getenv("LOCALSPACE_MONITOR__DEBOUNCE_MS"):
            try:
                config["debounce_ms"] = int(debounce)
            except ValueError:
                pass
        if settle := os.getenv("LOCALSPACE_MONITOR__SETTLE_DELAY_MS"):
            try:
                config["settle_delay_ms"] = int(settle)
            except ValueError:
                pass
        if queue_size := os.getenv("LOCALSPACE_MONITOR__QUEUE_SIZE"):
            try:
                config["queue_size"] = int(queue_size)
            except ValueError:
                pass
        return config

    @classmethod
    def extract_cli_overrides(cls, args: Any) -> dict[str, Any]:
        """Extract monitor config from CLI arguments."""
        overrides: dict[str, Any] = {}
        if hasattr(args, "watch"):
            overrides["enabled"] = bool(args.watch)
        if getattr(args, "debounce_ms", None) is not None:
            overrides["debounce_ms"] = args.debounce_ms
        return overrides
