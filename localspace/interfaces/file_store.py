"""File store interface for LocalSpace.

The store is the only shared mutable state between the initial scan writer
and the live-update path. Implementations must serialize writes and must
treat ``path`` as the unique key for both files and directories.
"""

from abc import ABC, abstractmethod
from typing import Any

from localspace.core.models import DirectoryRecord, FileRecord


class FileStore(ABC):
    """Abstract base class for file index stores."""

    @abstractmethod
    def connect(self) -> None:
        """Open the underlying storage and create the schema if needed."""
        ...

    @abstractmethod
    def disconnect(self) -> None:
        """Flush and close the underlying storage."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    # File records

    @abstractmethod
    def insert_files(self, records: list[FileRecord]) -> None:
        """Write a batch of file records in one transaction.

        Existing records with the same path are replaced.
        """
        ...

    @abstractmethod
    def upsert_file(self, record: FileRecord) -> None:
        """Insert or replace a single file record."""
        ...

    @abstractmethod
    def delete_file(self, path: str) -> bool:
        """Remove the file record for ``path``. Returns True if one existed."""
        ...

    @abstractmethod
    def get_file_by_path(self, path: str) -> FileRecord | None:
        ...

    @abstractmethod
    def get_files_in_directory(self, directory: str) -> list[FileRecord]:
        """Files whose parent directory is exactly ``directory``, largest first."""
        ...

    @abstractmethod
    def get_files_by_size(self, offset: int = 0, limit: int = 100) -> list[FileRecord]:
        ...

    @abstractmethod
    def get_files_by_modified(
        self, offset: int = 0, limit: int = 100
    ) -> list[FileRecord]:
        ...

    @abstractmethod
    def get_large_old_files(
        self, min_size: int, min_age_days: int, limit: int = 100
    ) -> list[FileRecord]:
        """Files at least ``min_size`` bytes and unmodified for ``min_age_days``."""
        ...

    @abstractmethod
    def count_files(self) -> int:
        ...

    @abstractmethod
    def total_size(self) -> int:
        ...

    # Directory records

    @abstractmethod
    def insert_directories(self, records: list[DirectoryRecord]) -> None:
        """Write a batch of directory records in one transaction."""
        ...

    @abstractmethod
    def get_directory(self, path: str) -> DirectoryRecord | None:
        ...

    @abstractmethod
    def get_subdirectories(self, path: str) -> list[DirectoryRecord]:
        """Direct children of ``path``, largest first."""
        ...

    @abstractmethod
    def get_top_directories(
        self, limit: int = 20, root_prefix: str | None = None
    ) -> list[DirectoryRecord]:
        """Largest directories, optionally restricted to paths under a prefix."""
        ...

    # Maintenance

    @abstractmethod
    def clear_all(self) -> None:
        """Remove every file and directory record."""
        ...

    @abstractmethod
    def get_stats(self) -> dict[str, Any]:
        ...
