"""Service factory - the composition root for LocalSpace.

Every entry point builds its store and services through ``create_services``
so CLI commands and embedding applications get the same wiring from one
Config.
"""

from dataclasses import dataclass

from loguru import logger

from localspace.core.config.config import Config
from localspace.interfaces.file_store import FileStore
from localspace.providers.database.duckdb_provider import DuckDBProvider
from localspace.services.change_monitor import ChangeMonitor
from localspace.services.directory_aggregator import DirectoryAggregator
from localspace.services.index_orchestrator import IndexOrchestrator
from localspace.services.risk_classifier import RiskClassifier
from localspace.services.scanner import Scanner


@dataclass
class IndexServices:
    """Fully wired set of LocalSpace services sharing one store."""

    store: FileStore
    classifier: RiskClassifier
    scanner: Scanner
    aggregator: DirectoryAggregator
    monitor: ChangeMonitor
    orchestrator: IndexOrchestrator

    def close(self) -> None:
        """Disconnect the store. Stop monitoring first."""
        if self.store.is_connected:
            self.store.disconnect()


def create_store(config: Config) -> FileStore:
    """Create and connect the configured store."""
    if config.database.provider != "duckdb":
        raise ValueError(f"Unsupported database provider: {config.database.provider}")

    store = DuckDBProvider(config.database.get_db_path(), config.database)
    store.connect()
    return store


def create_services(config: Config, store: FileStore | None = None) -> IndexServices:
    """Build every service from ``config``.

    Args:
        config: Loaded configuration
        store: Already-connected store to use instead of the configured one
    """
    if store is None:
        store = create_store(config)

    classifier = RiskClassifier(config.risk_config_path)
    scanner = Scanner(config.indexing)
    aggregator = DirectoryAggregator(
        classifier, batch_size=config.indexing.directory_batch_size
    )
    monitor = ChangeMonitor(config.monitor)
    orchestrator = IndexOrchestrator(
        store, scanner, aggregator, classifier, monitor, config=config
    )

    logger.debug(f"Services created (database: {config.database.get_db_path()})")
    return IndexServices(
        store=store,
        classifier=classifier,
        scanner=scanner,
        aggregator=aggregator,
        monitor=monitor,
        orchestrator=orchestrator,
    )
