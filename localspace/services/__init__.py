"""Service layer for LocalSpace: scanning, classification, aggregation and sync."""

from .change_monitor import ChangeMonitor, Debouncer
from .directory_aggregator import DirectoryAggregator
from .index_orchestrator import IndexOrchestrator
from .risk_classifier import RiskClassifier
from .scanner import ProgressTracker, Scanner

__all__ = [
    "ChangeMonitor",
    "Debouncer",
    "DirectoryAggregator",
    "IndexOrchestrator",
    "ProgressTracker",
    "RiskClassifier",
    "Scanner",
]
