"""DuckDB connection and schema management for LocalSpace."""

import os
import shutil
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

import duckdb
from loguru import logger

if TYPE_CHECKING:
    from localspace.core.config.database_config import DatabaseConfig


class DuckDBConnectionManager:
    """Manages the DuckDB connection, schema creation and checkpoints."""

    def __init__(self, db_path: Path | str, config: "DatabaseConfig | None" = None):
        """Initialize DuckDB connection manager.

        Args:
            db_path: Path to DuckDB database file or ":memory:" for in-memory database
            config: Database configuration for provider-specific settings
        """
        self._db_path = db_path
        self.connection: Any | None = None
        self.config = config

        self._operations_since_checkpoint = 0
        self._checkpoint_threshold = config.checkpoint_threshold if config else 100
        self._last_checkpoint_time = time.time()

    @property
    def db_path(self) -> Path | str:
        """Database connection path or identifier."""
        return self._db_path

    @property
    def is_memory(self) -> bool:
        return str(self._db_path) == ":memory:"

    @property
    def is_connected(self) -> bool:
        """Check if database connection is active."""
        return self.connection is not None

    def connect(self) -> None:
        """Establish database connection and initialize schema with WAL validation."""
        logger.info(f"Connecting to DuckDB database: {self.db_path}")

        if not self.is_memory:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        try:
            self._connect_with_wal_validation()
            logger.debug("DuckDB connection established")

            self.create_schema()
            self.create_indexes()

            logger.info("DuckDB connection manager initialization complete")

        except Exception as e:
            logger.error(f"DuckDB connection failed: {e}")
            raise

    def _connect_with_wal_validation(self) -> None:
        """Connect to DuckDB, recovering once from a WAL that fails to replay."""
        try:
            self.connection = duckdb.connect(str(self.db_path))
        except duckdb.Error as e:
            error_msg = str(e)

            if not self._is_wal_corruption_error(error_msg):
                raise

            logger.warning(f"WAL corruption detected: {error_msg}")
            self._handle_wal_corruption()

            try:
                self.connection = duckdb.connect(str(self.db_path))
                logger.info("DuckDB connection successful after WAL cleanup")
            except Exception as retry_error:
                logger.error(f"Connection failed even after WAL cleanup: {retry_error}")
                raise

    def _is_wal_corruption_error(self, error_msg: str) -> bool:
        """Check if error message indicates WAL corruption."""
        corruption_indicators = [
            "Failure while replaying WAL file",
            "Binder Error",
            "Catalog Error",
        ]
        return any(indicator in error_msg for indicator in corruption_indicators)

    def _handle_wal_corruption(self) -> None:
        """Back up and remove a WAL file that cannot be replayed."""
        db_path = Path(self.db_path)
        wal_file = db_path.with_suffix(db_path.suffix + ".wal")

        if not wal_file.exists():
            logger.warning(f"WAL corruption detected but no WAL file found at: {wal_file}")
            return

        file_size = wal_file.stat().st_size
        logger.warning(f"Discarding corrupted WAL file ({file_size:,} bytes)")

        try:
            backup_path = wal_file.with_suffix(".wal.corrupt")
            shutil.copy2(wal_file, backup_path)
            logger.info(f"Created WAL backup at: {backup_path}")

            os.remove(wal_file)
            logger.warning(f"Removed corrupted WAL file: {wal_file} (backup saved)")
        except OSError as e:
            logger.error(f"Failed to handle corrupted WAL file {wal_file}: {e}")
            raise

    def record_operation(self, count: int = 1) -> None:
        """Count completed write operations and checkpoint when due."""
        self._operations_since_checkpoint += count
        self._maybe_checkpoint()

    def _maybe_checkpoint(self, force: bool = False) -> None:
        """Perform checkpoint if needed based on operations count or time elapsed.

        Args:
            force: Force checkpoint regardless of thresholds
        """
        if self.connection is None or self.is_memory:
            return

        current_time = time.time()
        time_since_checkpoint = current_time - self._last_checkpoint_time

        should_checkpoint = (
            force
            or self._operations_since_checkpoint >= self._checkpoint_threshold
            or time_since_checkpoint >= 300
        )
        if not should_checkpoint:
            return

        try:
            self.connection.execute("CHECKPOINT")
            logger.debug(
                f"Checkpoint completed (operations: {self._operations_since_checkpoint}, "
                f"time: {time_since_checkpoint:.1f}s)"
            )
            self._operations_since_checkpoint = 0
            self._last_checkpoint_time = current_time
        except duckdb.Error as e:
            logger.warning(f"Checkpoint failed: {e}")

    def disconnect(self, skip_checkpoint: bool = False) -> None:
        """Close database connection with optional checkpointing.

        Args:
            skip_checkpoint: If True, skip the checkpoint operation
        """
        if self.connection is None:
            return

        try:
            if not skip_checkpoint and not self.is_memory:
                self.connection.execute("CHECKPOINT")
                logger.debug("Database checkpoint completed before disconnect")
        except duckdb.Error as e:
            # Don't block shutdown
            logger.error(f"Checkpoint failed during disconnect: {e}")
        finally:
            self.connection.close()
            self.connection = None
            logger.info("DuckDB connection closed")

    def create_schema(self) -> None:
        """Create the files and directories tables."""
        logger.debug("Creating DuckDB schema")

        if self.connection is None:
            raise RuntimeError("No database connection")

        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS files (
                path TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                directory TEXT NOT NULL,
                extension TEXT,
                size_bytes BIGINT NOT NULL,
                created_time DOUBLE,
                modified_time DOUBLE,
                scanned_time DOUBLE,
                risk_level TEXT NOT NULL,
                risk_explanation TEXT
            )
        """)

        self.connection.execute("""
            CREATE TABLE IF NOT EXISTS directories (
                path TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                parent_path TEXT,
                total_size_bytes BIGINT NOT NULL,
                file_count BIGINT NOT NULL,
                last_modified_time DOUBLE,
                risk_level TEXT NOT NULL,
                risk_explanation TEXT,
                main_file_types TEXT
            )
        """)

    def create_indexes(self) -> None:
        """Create secondary indexes for the ordered and grouped queries."""
        logger.debug("Creating DuckDB indexes")

        if self.connection is None:
            raise RuntimeError("No database connection")

        self.connection.execute("CREATE INDEX IF NOT EXISTS idx_files_size ON files(size_bytes)")
        self.connection.execute("CREATE INDEX IF NOT EXISTS idx_files_modified ON files(modified_time)")
        self.connection.execute("CREATE INDEX IF NOT EXISTS idx_files_directory ON files(directory)")
        self.connection.execute("CREATE INDEX IF NOT EXISTS idx_dirs_parent ON directories(parent_path)")
        self.connection.execute("CREATE INDEX IF NOT EXISTS idx_dirs_size ON directories(total_size_bytes)")

    def health_check(self) -> dict[str, Any]:
        """Perform health check and return status information."""
        status: dict[str, Any] = {
            "provider": "duckdb",
            "connected": self.is_connected,
            "db_path": str(self.db_path),
            "version": None,
            "tables": [],
            "errors": [],
        }

        if self.connection is None:
            status["errors"].append("Not connected to database")
            return status

        try:
            version_result = self.connection.execute("SELECT version()").fetchone()
            status["version"] = version_result[0] if version_result else "unknown"

            tables_result = self.connection.execute("""
                SELECT table_name FROM information_schema.tables
                WHERE table_schema = 'main' AND table_type = 'BASE TABLE'
            """).fetchall()
            status["tables"] = [table[0] for table in tables_result]
        except duckdb.Error as e:
            status["errors"].append(f"Health check error: {e}")

        return status
