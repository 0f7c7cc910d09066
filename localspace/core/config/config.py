"""Centralized configuration management for LocalSpace.

Configuration is loaded with a clear precedence:
1. CLI arguments (highest priority)
2. Environment variables (LOCALSPACE_ prefix, __ for nesting)
3. Config file (via --config path)
4. Default values (lowest priority)
"""

import copy
import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .database_config import DatabaseConfig
from .indexing_config import IndexingConfig
from .monitor_config import MonitorConfig
from .risk_config import default_risk_config_path


class Config(BaseModel):
    """Centralized configuration for LocalSpace."""

    model_config = ConfigDict(validate_assignment=True)

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    indexing: IndexingConfig = Field(default_factory=IndexingConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    risk_config_path: Path = Field(default_factory=default_risk_config_path)
    debug: bool = Field(default=False)

    def __init__(
        self,
        config_file: Path | None = None,
        overrides: dict[str, Any] | None = None,
        **kwargs,
    ):
        """Initialize configuration with hierarchical loading.

        Args:
            config_file: Optional path to configuration file (from --config)
            overrides: Optional dictionary of CLI overrides
            **kwargs: Additional keyword arguments
        """
        config_data: dict[str, Any] = {}

        env_vars = self._load_env_vars()
        config_data.update(env_vars)
        preserved_env_vars = copy.deepcopy(env_vars)

        if config_file and config_file.exists():
            try:
                with open(config_file) as f:
                    file_config = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(
                    f"Invalid JSON in config file {config_file}: {e}. "
                    "Please check the file format and try again."
                )
            self._deep_merge(config_data, file_config)
            # Environment variables outrank the file
            self._deep_merge(config_data, preserved_env_vars)

        if overrides:
            self._deep_merge(config_data, overrides)

        if kwargs:
            self._deep_merge(config_data, kwargs)

        super().__init__(**config_data)

    @staticmethod
    def _load_env_vars() -> dict[str, Any]:
        """Load configuration from LOCALSPACE_ environment variables."""
        config: dict[str, Any] = {}

        if debug := os.getenv("LOCALSPACE_DEBUG"):
            config["debug"] = debug.lower() in ("true", "1", "yes")
        if risk_path := os.getenv("LOCALSPACE_RISK_CONFIG_PATH"):
            config["risk_config_path"] = risk_path

        if database := DatabaseConfig.load_from_env():
            config["database"] = database
        if indexing := IndexingConfig.load_from_env():
            config["indexing"] = indexing
        if monitor := MonitorConfig.load_from_env():
            config["monitor"] = monitor

        return config

    @classmethod
    def _deep_merge(cls, base: dict[str, Any], update: dict[str, Any]) -> None:
        """Deep merge update dictionary into base dictionary."""
        for key, value in update.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                cls._deep_merge(base[key], value)
            else:
                base[key] = value

    @field_validator("risk_config_path")
    def validate_risk_config_path(cls, v: Path) -> Path:
        return v.expanduser().resolve()

    @model_validator(mode="after")
    def validate_config(self) -> "Config":
        """Ensure the database path is absolute."""
        if not self.database.is_memory and not self.database.path.is_absolute():
            self.database.path = self.database.path.expanduser().resolve()
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_cli_args(cls, args: Any, config_file: Path | None = None) -> "Config":
        """Create configuration from parsed CLI arguments."""
        overrides: dict[str, Any] = {}

        if database := DatabaseConfig.extract_cli_overrides(args):
            overrides["database"] = database
        if indexing := IndexingConfig.extract_cli_overrides(args):
            overrides["indexing"] = indexing
        if monitor := MonitorConfig.extract_cli_overrides(args):
            overrides["monitor"] = monitor

        if getattr(args, "risk_config", None):
            overrides["risk_config_path"] = args.risk_config
        if getattr(args, "verbose", False):
            overrides["debug"] = True

        if config_file is None:
            config_file = getattr(args, "config", None)

        return cls(config_file=config_file, overrides=overrides)
