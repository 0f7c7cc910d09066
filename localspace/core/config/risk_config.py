"""Risk rule configuration.

The rule document is a small JSON file holding an ordered rule list and the
thresholds used by the cleanup candidates view. Order matters: the first
matching rule wins.
"""

import json
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator

from localspace.core.types import RiskLevel

DEFAULT_LARGE_FILE_THRESHOLD = 500 * 1024 * 1024
DEFAULT_OLD_FILE_DAYS = 180


def default_risk_config_path() -> Path:
    return Path.home() / ".localspace" / "risk_config.json"


class RiskRule(BaseModel):
    """A single path-fragment or extension rule."""

    pattern: str = Field(description="Path substring or file extension")
    level: RiskLevel = Field(description="Risk level assigned on match")
    explanation: str = Field(default="", description="Shown to the user on match")
    is_extension: bool = Field(
        default=False, description="Match against the file extension instead of the path"
    )

    @field_validator("pattern")
    def validate_pattern(cls, v: str) -> str:
        if not v:
            raise ValueError("pattern must not be empty")
        return v


class RiskConfig(BaseModel):
    """Ordered rule list plus cleanup thresholds."""

    rules: list[RiskRule] = Field(default_factory=list)
    large_file_threshold_bytes: int = Field(
        default=DEFAULT_LARGE_FILE_THRESHOLD,
        description="Files at least this large are cleanup candidates",
    )
    old_file_threshold_days: int = Field(
        default=DEFAULT_OLD_FILE_DAYS,
        description="Files untouched this long are cleanup candidates",
    )

    @field_validator("large_file_threshold_bytes", "old_file_threshold_days")
    def validate_threshold(cls, v: int) -> int:
        if v < 0:
            raise ValueError("threshold must not be negative")
        return v

    @property
    def path_rules(self) -> list[RiskRule]:
        return [rule for rule in self.rules if not rule.is_extension]

    @property
    def extension_rules(self) -> list[RiskRule]:
        return [rule for rule in self.rules if rule.is_extension]


def _rule(pattern: str, level: RiskLevel, explanation: str, is_extension: bool = False) -> RiskRule:
    return RiskRule(
        pattern=pattern, level=level, explanation=explanation, is_extension=is_extension
    )


def default_risk_config() -> RiskConfig:
    """Built-in rule set used when no readable config exists."""
    high = RiskLevel.HIGH_RISK
    review = RiskLevel.REVIEW
    safe = RiskLevel.SAFE
    return RiskConfig(
        rules=[
            _rule("C:\\Windows", high, "Critical operating system files."),
            _rule("C:\\Program Files", high, "Installed applications. Use an uninstaller instead."),
            _rule("/System/", high, "Critical operating system files."),
            _rule("/usr/lib/", high, "System libraries required by installed software."),
            _rule("/usr/bin/", high, "System executables."),
            _rule("/boot/", high, "Boot loader and kernel images."),
            _rule(".sys", high, "System driver file.", is_extension=True),
            _rule(".dll", high, "Shared library required by applications.", is_extension=True),
            _rule(".so", high, "Shared library required by applications.", is_extension=True),
            _rule(".dylib", high, "Shared library required by applications.", is_extension=True),
            _rule("AppData", review, "Application data. May contain settings or saves."),
            _rule("Library/Application Support", review, "Application data. May contain settings or saves."),
            _rule("/.config/", review, "Application settings."),
            _rule(".exe", review, "Executable program. Check before deleting.", is_extension=True),
            _rule(".msi", review, "Installer package.", is_extension=True),
            _rule(".app", review, "Application bundle.", is_extension=True),
            _rule("Temp", safe, "Temporary files. Usually safe to delete."),
            _rule("/tmp/", safe, "Temporary files. Usually safe to delete."),
            _rule("/.cache/", safe, "Cached data that will be regenerated."),
            _rule(".log", safe, "Log file. Usually safe to delete.", is_extension=True),
            _rule(".tmp", safe, "Temporary file. Usually safe to delete.", is_extension=True),
        ]
    )


def save_risk_config(config: RiskConfig, path: Path) -> None:
    """Write the whole document, replacing any previous content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(config.model_dump_json(indent=2), encoding="utf-8")


def load_risk_config(path: Path) -> RiskConfig:
    """Load the rule document, falling back to (and persisting) the defaults.

    Never raises: a missing, unreadable or invalid file yields the built-in
    rule set, which is then written back to ``path``.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return RiskConfig.model_validate(data)
    except FileNotFoundError:
        logger.info(f"No risk config at {path}, writing defaults")
    except (OSError, ValueError, ValidationError) as e:
        logger.warning(f"Failed to load risk config {path}: {e}. Using defaults")

    config = default_risk_config()
    try:
        save_risk_config(config, path)
    except OSError as e:
        logger.error(f"Failed to persist default risk config to {path}: {e}")
    return config
