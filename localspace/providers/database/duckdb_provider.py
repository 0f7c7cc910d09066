"""DuckDB provider implementation for LocalSpace - concrete FileStore using DuckDB."""

import threading
from collections.abc import Callable
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

import duckdb
from loguru import logger

from localspace.core.exceptions import StoreError
from localspace.core.models import DirectoryRecord, FileRecord
from localspace.interfaces.file_store import FileStore
from localspace.providers.database.duckdb.connection_manager import (
    DuckDBConnectionManager,
)
from localspace.providers.database.duckdb.directory_repository import (
    DuckDBDirectoryRepository,
)
from localspace.providers.database.duckdb.file_repository import DuckDBFileRepository

if TYPE_CHECKING:
    from localspace.core.config.database_config import DatabaseConfig

T = TypeVar("T")


def _serialized(method: Callable[..., T]) -> Callable[..., T]:
    """Run the wrapped provider method while holding the provider lock."""

    @wraps(method)
    def wrapper(self: "DuckDBProvider", *args: Any, **kwargs: Any) -> T:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class DuckDBProvider(FileStore):
    """DuckDB implementation of the FileStore interface.

    Every public method runs under one re-entrant lock, so the scan writer,
    the aggregate writer and the live-update handler never interleave on the
    shared connection.
    """

    def __init__(self, db_path: Path | str, config: "DatabaseConfig | None" = None):
        """Initialize DuckDB provider.

        Args:
            db_path: Path to DuckDB database file or ":memory:" for in-memory database
            config: Database configuration for provider-specific settings
        """
        self.config = config
        self.provider_type = "duckdb"
        self._lock = threading.RLock()
        self._in_transaction = False

        self._connection_manager = DuckDBConnectionManager(db_path, config)
        self._file_repository = DuckDBFileRepository(self._connection_manager)
        self._directory_repository = DuckDBDirectoryRepository(self._connection_manager)

    @property
    def connection(self) -> Any | None:
        """Database connection - delegate to connection manager."""
        return self._connection_manager.connection

    @property
    def db_path(self) -> Path | str:
        return self._connection_manager.db_path

    @property
    def is_connected(self) -> bool:
        return self._connection_manager.is_connected

    @_serialized
    def connect(self) -> None:
        """Establish database connection and initialize schema."""
        self._connection_manager.connect()
        logger.info("DuckDB provider initialization complete")

    @_serialized
    def disconnect(self, skip_checkpoint: bool = False) -> None:
        self._connection_manager.disconnect(skip_checkpoint)

    @_serialized
    def health_check(self) -> dict[str, Any]:
        return self._connection_manager.health_check()

    # Transactions

    def begin_transaction(self) -> None:
        """Begin a database transaction."""
        if self.connection is None:
            raise RuntimeError("No database connection")
        self.connection.execute("BEGIN TRANSACTION")
        self._in_transaction = True

    def commit_transaction(self) -> None:
        """Commit the current transaction."""
        if self.connection is None:
            raise RuntimeError("No database connection")
        try:
            self.connection.execute("COMMIT")
        finally:
            self._in_transaction = False

    def rollback_transaction(self) -> None:
        """Rollback the current transaction."""
        if self.connection is None:
            raise RuntimeError("No database connection")
        try:
            self.connection.execute("ROLLBACK")
        finally:
            self._in_transaction = False

    def _write(self, description: str, operation: Callable[[], None], count: int) -> None:
        """Run ``operation`` in its own transaction, raising StoreError on failure.

        Only the failing write is rolled back; earlier committed batches stay.
        """
        if self.connection is None:
            raise StoreError("No database connection")

        try:
            self.begin_transaction()
            operation()
            self.commit_transaction()
        except (duckdb.Error, RuntimeError) as e:
            self._rollback_open_transaction(description)
            logger.error(f"Failed to {description}: {e}")
            raise StoreError(f"Failed to {description}: {e}") from e
        except BaseException:
            self._rollback_open_transaction(description)
            raise

        self._connection_manager.record_operation(count)

    def _rollback_open_transaction(self, description: str) -> None:
        if not self._in_transaction:
            return
        try:
            self.rollback_transaction()
        except duckdb.Error as e:
            logger.error(f"Rollback failed after {description}: {e}")

    # File records

    @_serialized
    def insert_files(self, records: list[FileRecord]) -> None:
        if not records:
            return
        self._write(
            f"write {len(records)} file records",
            lambda: self._file_repository.write_files(records),
            len(records),
        )

    @_serialized
    def upsert_file(self, record: FileRecord) -> None:
        self._write(
            f"upsert file {record.path}",
            lambda: self._file_repository.write_files([record]),
            1,
        )

    @_serialized
    def delete_file(self, path: str) -> bool:
        deleted: list[bool] = []
        self._write(
            f"delete file {path}",
            lambda: deleted.append(self._file_repository.delete_file(path)),
            1,
        )
        return deleted[0]

    @_serialized
    def get_file_by_path(self, path: str) -> FileRecord | None:
        return self._file_repository.get_file_by_path(path)

    @_serialized
    def get_files_in_directory(self, directory: str) -> list[FileRecord]:
        return self._file_repository.get_files_in_directory(directory)

    @_serialized
    def get_files_by_size(self, offset: int = 0, limit: int = 100) -> list[FileRecord]:
        return self._file_repository.get_files_by_size(offset, limit)

    @_serialized
    def get_files_by_modified(
        self, offset: int = 0, limit: int = 100
    ) -> list[FileRecord]:
        return self._file_repository.get_files_by_modified(offset, limit)

    @_serialized
    def get_large_old_files(
        self, min_size: int, min_age_days: int, limit: int = 100
    ) -> list[FileRecord]:
        return self._file_repository.get_large_old_files(min_size, min_age_days, limit)

    @_serialized
    def count_files(self) -> int:
        return self._file_repository.count()

    @_serialized
    def total_size(self) -> int:
        return self._file_repository.total_size()

    # Directory records

    @_serialized
    def insert_directories(self, records: list[DirectoryRecord]) -> None:
        if not records:
            return
        self._write(
            f"write {len(records)} directory records",
            lambda: self._directory_repository.write_directories(records),
            len(records),
        )

    @_serialized
    def get_directory(self, path: str) -> DirectoryRecord | None:
        return self._directory_repository.get_directory(path)

    @_serialized
    def get_subdirectories(self, path: str) -> list[DirectoryRecord]:
        return self._directory_repository.get_subdirectories(path)

    @_serialized
    def get_top_directories(
        self, limit: int = 20, root_prefix: str | None = None
    ) -> list[DirectoryRecord]:
        return self._directory_repository.get_top_directories(limit, root_prefix)

    # Maintenance

    @_serialized
    def clear_all(self) -> None:
        def clear() -> None:
            self._file_repository.clear()
            self._directory_repository.clear()

        self._write("clear index", clear, 1)
        logger.info("Cleared all file and directory records")

    @_serialized
    def get_stats(self) -> dict[str, Any]:
        """Get database statistics (file count, directory count, total size)."""
        if self.connection is None:
            raise RuntimeError("No database connection")

        try:
            return {
                "files": self._file_repository.count(),
                "directories": self._directory_repository.count(),
                "total_size_bytes": self._file_repository.total_size(),
            }
        except duckdb.Error as e:
            logger.error(f"Failed to get database stats: {e}")
            return {"files": 0, "directories": 0, "total_size_bytes": 0}
