"""Enumerations shared across LocalSpace services."""

from enum import Enum


class RiskLevel(str, Enum):
    """How cautious a user should be before deleting a path."""

    SAFE = "safe"
    REVIEW = "review"
    HIGH_RISK = "high_risk"

    @property
    def label(self) -> str:
        """Human-facing label (e.g. 'High risk')."""
        return self.value.replace("_", " ").capitalize()


class ChangeKind(str, Enum):
    """Normalized filesystem change kinds emitted by ChangeMonitor."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class IndexState(str, Enum):
    """Lifecycle states of the IndexOrchestrator."""

    IDLE = "idle"
    SCANNING = "scanning"
    PERSISTING = "persisting"
    AGGREGATING = "aggregating"
    MONITORING = "monitoring"
