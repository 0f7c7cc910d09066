"""DuckDB file repository for LocalSpace - file record reads and writes."""

import time
from typing import TYPE_CHECKING, Any

from loguru import logger

from localspace.core.models import FileRecord
from localspace.core.types import RiskLevel

if TYPE_CHECKING:
    from localspace.providers.database.duckdb.connection_manager import (
        DuckDBConnectionManager,
    )

_COLUMNS = (
    "path, name, directory, extension, size_bytes, created_time, "
    "modified_time, scanned_time, risk_level, risk_explanation"
)


class DuckDBFileRepository:
    """Repository for file records using DuckDB.

    Writes are not wrapped in transactions here; the provider owns
    transaction boundaries.
    """

    def __init__(self, connection_manager: "DuckDBConnectionManager"):
        self.connection_manager = connection_manager

    @property
    def connection(self) -> Any:
        """Get the database connection from connection manager."""
        connection = self.connection_manager.connection
        if connection is None:
            raise RuntimeError("No database connection")
        return connection

    @staticmethod
    def _to_row(record: FileRecord) -> list[Any]:
        return [
            record.path,
            record.name,
            record.directory,
            record.extension,
            record.size_bytes,
            record.created_time,
            record.modified_time,
            record.scanned_time,
            record.risk_level.value,
            record.risk_explanation,
        ]

    @staticmethod
    def _from_row(row: tuple) -> FileRecord:
        return FileRecord(
            path=row[0],
            name=row[1],
            directory=row[2],
            extension=row[3] or "",
            size_bytes=row[4],
            created_time=row[5] or 0.0,
            modified_time=row[6] or 0.0,
            scanned_time=row[7] or 0.0,
            risk_level=RiskLevel(row[8]),
            risk_explanation=row[9] or "",
        )

    def write_files(self, records: list[FileRecord]) -> None:
        """Replace-or-insert every record, keyed by path."""
        # Last record wins when a batch repeats a path
        unique = list({record.path: record for record in records}.values())
        if not unique:
            return
        self.connection.executemany(
            "DELETE FROM files WHERE path = ?", [[record.path] for record in unique]
        )
        self.connection.executemany(
            f"INSERT INTO files ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [self._to_row(record) for record in unique],
        )

    def delete_file(self, path: str) -> bool:
        result = self.connection.execute(
            "DELETE FROM files WHERE path = ? RETURNING path", [path]
        ).fetchall()
        return len(result) > 0

    def clear(self) -> None:
        self.connection.execute("DELETE FROM files")

    def get_file_by_path(self, path: str) -> FileRecord | None:
        row = self.connection.execute(
            f"SELECT {_COLUMNS} FROM files WHERE path = ?", [path]
        ).fetchone()
        return self._from_row(row) if row else None

    def get_files_in_directory(self, directory: str) -> list[FileRecord]:
        rows = self.connection.execute(
            f"SELECT {_COLUMNS} FROM files WHERE directory = ? "
            "ORDER BY size_bytes DESC, path",
            [directory],
        ).fetchall()
        return [self._from_row(row) for row in rows]

    def get_files_by_size(self, offset: int, limit: int) -> list[FileRecord]:
        rows = self.connection.execute(
            f"SELECT {_COLUMNS} FROM files ORDER BY size_bytes DESC, path "
            "LIMIT ? OFFSET ?",
            [limit, offset],
        ).fetchall()
        return [self._from_row(row) for row in rows]

    def get_files_by_modified(self, offset: int, limit: int) -> list[FileRecord]:
        rows = self.connection.execute(
            f"SELECT {_COLUMNS} FROM files ORDER BY modified_time DESC, path "
            "LIMIT ? OFFSET ?",
            [limit, offset],
        ).fetchall()
        return [self._from_row(row) for row in rows]

    def get_large_old_files(
        self, min_size: int, min_age_days: int, limit: int, now: float | None = None
    ) -> list[FileRecord]:
        cutoff = (now if now is not None else time.time()) - min_age_days * 86400
        rows = self.connection.execute(
            f"SELECT {_COLUMNS} FROM files "
            "WHERE size_bytes >= ? AND modified_time <= ? "
            "ORDER BY size_bytes DESC, path LIMIT ?",
            [min_size, cutoff, limit],
        ).fetchall()
        logger.debug(
            f"Found {len(rows)} cleanup candidates (>= {min_size} bytes, "
            f">= {min_age_days} days old)"
        )
        return [self._from_row(row) for row in rows]

    def count(self) -> int:
        return self.connection.execute("SELECT COUNT(*) FROM files").fetchone()[0]

    def total_size(self) -> int:
        result = self.connection.execute(
            "SELECT COALESCE(SUM(size_bytes), 0) FROM files"
        ).fetchone()
        return int(result[0])
