"""DuckDB directory repository for LocalSpace - aggregate directory records."""

import os
from typing import TYPE_CHECKING, Any

from localspace.core.models import DirectoryRecord
from localspace.core.types import RiskLevel

if TYPE_CHECKING:
    from localspace.providers.database.duckdb.connection_manager import (
        DuckDBConnectionManager,
    )

_COLUMNS = (
    "path, name, parent_path, total_size_bytes, file_count, "
    "last_modified_time, risk_level, risk_explanation, main_file_types"
)


class DuckDBDirectoryRepository:
    """Repository for directory aggregate records using DuckDB."""

    def __init__(self, connection_manager: "DuckDBConnectionManager"):
        self.connection_manager = connection_manager

    @property
    def connection(self) -> Any:
        connection = self.connection_manager.connection
        if connection is None:
            raise RuntimeError("No database connection")
        return connection

    @staticmethod
    def _to_row(record: DirectoryRecord) -> list[Any]:
        return [
            record.path,
            record.name,
            record.parent_path,
            record.total_size_bytes,
            record.file_count,
            record.last_modified_time,
            record.risk_level.value,
            record.risk_explanation,
            record.main_file_types,
        ]

    @staticmethod
    def _from_row(row: tuple) -> DirectoryRecord:
        return DirectoryRecord(
            path=row[0],
            name=row[1],
            parent_path=row[2] or "",
            total_size_bytes=row[3],
            file_count=row[4],
            last_modified_time=row[5] or 0.0,
            risk_level=RiskLevel(row[6]),
            risk_explanation=row[7] or "",
            main_file_types=row[8] or "",
        )

    def write_directories(self, records: list[DirectoryRecord]) -> None:
        unique = list({record.path: record for record in records}.values())
        if not unique:
            return
        self.connection.executemany(
            "DELETE FROM directories WHERE path = ?", [[record.path] for record in unique]
        )
        self.connection.executemany(
            f"INSERT INTO directories ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [self._to_row(record) for record in unique],
        )

    def clear(self) -> None:
        self.connection.execute("DELETE FROM directories")

    def get_directory(self, path: str) -> DirectoryRecord | None:
        row = self.connection.execute(
            f"SELECT {_COLUMNS} FROM directories WHERE path = ?", [path]
        ).fetchone()
        return self._from_row(row) if row else None

    def get_subdirectories(self, path: str) -> list[DirectoryRecord]:
        rows = self.connection.execute(
            f"SELECT {_COLUMNS} FROM directories WHERE parent_path = ? AND path <> ? "
            "ORDER BY total_size_bytes DESC, path",
            [path, path],
        ).fetchall()
        return [self._from_row(row) for row in rows]

    def get_top_directories(
        self, limit: int, root_prefix: str | None = None
    ) -> list[DirectoryRecord]:
        if root_prefix:
            # Match whole path components so /data/a never picks up /data/ab
            root = root_prefix.rstrip("/\\") or root_prefix
            below = root if root.endswith(os.sep) else root + os.sep
            rows = self.connection.execute(
                f"SELECT {_COLUMNS} FROM directories "
                "WHERE path = ? OR starts_with(path, ?) "
                "ORDER BY total_size_bytes DESC, path LIMIT ?",
                [root, below, limit],
            ).fetchall()
        else:
            rows = self.connection.execute(
                f"SELECT {_COLUMNS} FROM directories "
                "ORDER BY total_size_bytes DESC, path LIMIT ?",
                [limit],
            ).fetchall()
        return [self._from_row(row) for row in rows]

    def count(self) -> int:
        return self.connection.execute("SELECT COUNT(*) FROM directories").fetchone()[0]
