"""Domain models for LocalSpace.

File and directory records are plain dataclasses so they can be produced in
worker threads and handed to the store without conversion. Timestamps are
POSIX seconds (floats).
"""

from dataclasses import dataclass, field, replace

from .types import ChangeKind, RiskLevel


@dataclass
class FileRecord:
    """Metadata for a single file, keyed by absolute path."""

    path: str
    name: str
    directory: str
    extension: str
    size_bytes: int
    created_time: float
    modified_time: float
    scanned_time: float
    risk_level: RiskLevel = RiskLevel.SAFE
    risk_explanation: str = ""

    def __post_init__(self) -> None:
        if self.size_bytes < 0:
            raise ValueError(f"size_bytes must be >= 0, got {self.size_bytes}")

    @property
    def formatted_size(self) -> str:
        return format_bytes(self.size_bytes)

    @property
    def category(self) -> str:
        return file_category(self.extension)


@dataclass
class DirectoryRecord:
    """Rollup of every file below a directory.

    Produced in bulk by DirectoryAggregator; not maintained by live updates.
    """

    path: str
    name: str
    parent_path: str
    total_size_bytes: int = 0
    file_count: int = 0
    last_modified_time: float = 0.0
    risk_level: RiskLevel = RiskLevel.SAFE
    risk_explanation: str = ""
    main_file_types: str = ""

    @property
    def formatted_size(self) -> str:
        return format_bytes(self.total_size_bytes)


@dataclass(frozen=True)
class ScanProgress:
    """Point-in-time snapshot of a running scan. Never persisted."""

    files_scanned: int = 0
    bytes_scanned: int = 0
    current_path: str = ""
    elapsed_seconds: float = 0.0
    percent_complete: float = 0.0
    remaining_seconds: float = 0.0
    files_per_second: float = 0.0
    estimated_total_files: int = 0
    is_complete: bool = False
    error_message: str | None = None
    phase: str = "scanning"

    def evolve(self, **changes) -> "ScanProgress":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass
class ScanSummary:
    """Outcome of one IndexOrchestrator.initial_scan invocation."""

    roots: list[str] = field(default_factory=list)
    files_indexed: int = 0
    bytes_indexed: int = 0
    directories_indexed: int = 0
    elapsed_seconds: float = 0.0
    cancelled: bool = False


@dataclass(frozen=True)
class ChangeEvent:
    """Normalized filesystem change.

    Renames arrive as two events: DELETED for the old path, then RENAMED
    for the new path with ``old_path`` set.
    """

    kind: ChangeKind
    path: str
    old_path: str | None = None
    is_directory: bool = False


def format_bytes(size: int) -> str:
    """Format a byte count as a short human-readable string."""
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size)
    order = 0
    while value >= 1024 and order < len(units) - 1:
        order += 1
        value /= 1024
    return f"{value:.2f}".rstrip("0").rstrip(".") + f" {units[order]}"


_CATEGORIES = {
    "Video": ("mp4", "mkv", "avi", "mov"),
    "Audio": ("mp3", "wav", "flac", "m4a"),
    "Image": ("jpg", "jpeg", "png", "gif", "bmp"),
    "Archive": ("zip", "rar", "7z", "tar", "gz"),
    "Executable": ("exe", "msi", "bat", "sh"),
    "Document/Log": ("log", "txt", "md"),
    "Office": ("pdf", "doc", "docx", "xls", "xlsx"),
    "System": ("dll", "sys", "bin"),
}
_CATEGORY_BY_EXTENSION = {
    ext: category for category, extensions in _CATEGORIES.items() for ext in extensions
}


def file_category(extension: str) -> str:
    """Display category for an extension (with or without the leading dot)."""
    return _CATEGORY_BY_EXTENSION.get(extension.lower().lstrip("."), "Other")
