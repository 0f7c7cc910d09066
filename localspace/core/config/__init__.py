"""Configuration models for LocalSpace."""

from .config import Config
from .database_config import DatabaseConfig
from .indexing_config import IndexingConfig
from .monitor_config import MonitorConfig
from .risk_config import (
    RiskConfig,
    RiskRule,
    default_risk_config,
    load_risk_config,
    save_risk_config,
)

__all__ = [
    "Config",
    "DatabaseConfig",
    "IndexingConfig",
    "MonitorConfig",
    "RiskConfig",
    "RiskRule",
    "default_risk_config",
    "load_risk_config",
    "save_risk_config",
]
