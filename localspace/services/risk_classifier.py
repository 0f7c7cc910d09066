"""Risk classification for indexed paths.

Rules are evaluated as an ordered list: path-fragment rules first, then (for
files only) extension rules. The first match wins.
"""

import os
import threading
from pathlib import Path

from loguru import logger

from localspace.core.config.risk_config import (
    RiskConfig,
    load_risk_config,
    save_risk_config,
)
from localspace.core.models import file_category
from localspace.core.types import RiskLevel

DEFAULT_EXPLANATION = "User data or common file type."


def _normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    if extension and not extension.startswith("."):
        extension = "." + extension
    return extension


class RiskClassifier:
    """Classify paths by deletion risk using an ordered rule set."""

    def __init__(self, config_path: Path, config: RiskConfig | None = None):
        """Initialize the classifier.

        Args:
            config_path: Location of the rule document; read at startup when
                ``config`` is not given and rewritten on update
            config: Preloaded rule set (skips reading ``config_path``)
        """
        self._config_path = config_path
        self._lock = threading.Lock()
        self._config = config if config is not None else load_risk_config(config_path)
        logger.debug(f"Risk classifier loaded {len(self._config.rules)} rules")

    @property
    def config_path(self) -> Path:
        return self._config_path

    def get_config(self) -> RiskConfig:
        return self._config

    def classify(self, path: str, is_directory: bool = False) -> tuple[RiskLevel, str]:
        """Return the risk level and explanation for ``path``."""
        # Single read so a concurrent update never mixes two rule sets
        config = self._config
        lowered = path.lower()

        for rule in config.rules:
            if not rule.is_extension and rule.pattern.lower() in lowered:
                return rule.level, rule.explanation

        if not is_directory:
            extension = _normalize_extension(os.path.splitext(path)[1])
            if extension:
                for rule in config.rules:
                    if rule.is_extension and _normalize_extension(rule.pattern) == extension:
                        return rule.level, rule.explanation

        return RiskLevel.SAFE, DEFAULT_EXPLANATION

    @staticmethod
    def get_category(extension: str) -> str:
        """Human-facing category for display; unrelated to risk."""
        return file_category(extension)

    def update_config(self, config: RiskConfig) -> bool:
        """Replace the rule set and persist it.

        The new rules apply to subsequent classifications only. Never raises;
        returns False when the document could not be written. In that case
        the new rules stay active in memory while the file keeps the old
        ones, so a later ``reload`` or restart brings the old rules back.
        """
        with self._lock:
            self._config = config
            try:
                save_risk_config(config, self._config_path)
            except OSError as e:
                logger.error(f"Failed to save risk config to {self._config_path}: {e}")
                return False

        logger.info(f"Risk config updated ({len(config.rules)} rules)")
        return True

    def reload(self) -> RiskConfig:
        """Re-read the rule document from disk."""
        with self._lock:
            self._config = load_risk_config(self._config_path)
        return self._config
