"""Recursive filesystem scanner.

The scanner walks each root depth-first, recording the files of a directory
before descending into its subdirectories. Traversal is iterative so deep
trees never hit the recursion limit. Errors on individual entries are logged
and skipped; an unreadable root is reported through the progress sink and
the remaining roots are still scanned.

All mutable scan state lives in a ProgressTracker created per ``scan`` call,
so one Scanner can serve sequential or concurrent scans.
"""

import os
import stat
import threading
import time
from collections.abc import Callable, Iterable
from typing import Pattern

from loguru import logger

from localspace.core.config.indexing_config import IndexingConfig
from localspace.core.models import FileRecord, ScanProgress
from localspace.utils.file_patterns import is_within, should_exclude_entry

ProgressSink = Callable[[ScanProgress], None]


class ProgressTracker:
    """Running counters and estimate for one scan invocation.

    The total file count is unknown up front, so percent complete is computed
    against an estimate that grows whenever the count catches up with it.
    Reported percent never decreases.
    """

    def __init__(
        self,
        sink: ProgressSink | None = None,
        interval: int = 500,
        initial_estimate: int = 100_000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sink = sink
        self._interval = interval
        self._clock = clock
        self._started = clock()

        self.files_scanned = 0
        self.bytes_scanned = 0
        self.estimated_total = initial_estimate
        self.last_percent = 0.0

    def record_file(self, size: int, path: str) -> None:
        """Count one file and emit a snapshot every ``interval`` files."""
        self.files_scanned += 1
        self.bytes_scanned += size
        if self.files_scanned >= self.estimated_total:
            self.estimated_total = max(
                self.files_scanned + 1000, int(self.files_scanned * 1.3)
            )
        if self.files_scanned % self._interval == 0:
            self.emit(path)

    def elapsed(self) -> float:
        return max(0.0, self._clock() - self._started)

    def snapshot(self, current_path: str = "", error_message: str | None = None) -> ScanProgress:
        """Build an in-progress snapshot (percent capped at 99)."""
        elapsed = self.elapsed()
        percent = min(99.0, self.files_scanned / self.estimated_total * 100)
        percent = max(self.last_percent, percent)
        self.last_percent = percent

        rate = self.files_scanned / elapsed if elapsed > 0 else 0.0
        if rate <= 0:
            remaining = 0.0
        else:
            remaining = max(0.0, (self.estimated_total - self.files_scanned) / rate)

        return ScanProgress(
            files_scanned=self.files_scanned,
            bytes_scanned=self.bytes_scanned,
            current_path=current_path,
            elapsed_seconds=elapsed,
            percent_complete=percent,
            remaining_seconds=remaining,
            files_per_second=rate,
            estimated_total_files=self.estimated_total,
            is_complete=False,
            error_message=error_message,
        )

    def emit(self, current_path: str = "", error_message: str | None = None) -> ScanProgress:
        progress = self.snapshot(current_path, error_message)
        if self._sink is not None:
            self._sink(progress)
        return progress

    def finish(self) -> ScanProgress:
        """Emit the terminal snapshot: 100 percent, complete."""
        elapsed = self.elapsed()
        self.last_percent = 100.0
        progress = ScanProgress(
            files_scanned=self.files_scanned,
            bytes_scanned=self.bytes_scanned,
            current_path="",
            elapsed_seconds=elapsed,
            percent_complete=100.0,
            remaining_seconds=0.0,
            files_per_second=self.files_scanned / elapsed if elapsed > 0 else 0.0,
            estimated_total_files=max(self.estimated_total, self.files_scanned),
            is_complete=True,
        )
        if self._sink is not None:
            self._sink(progress)
        return progress


class Scanner:
    """Walks root paths and produces one FileRecord per regular file."""

    def __init__(
        self,
        config: IndexingConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or IndexingConfig()
        self._clock = clock
        self._pattern_cache: dict[str, Pattern[str]] = {}

    def scan(
        self,
        paths: Iterable[str],
        progress: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[FileRecord]:
        """Scan every root and return the collected records.

        On cancellation the records gathered so far are returned. The final
        progress snapshot (100 percent, complete) is emitted in every case.
        """
        tracker = ProgressTracker(
            progress,
            interval=self.config.progress_interval,
            initial_estimate=self.config.initial_estimate,
            clock=self._clock,
        )
        records: list[FileRecord] = []

        for root in paths:
            if self._cancelled(cancel_event):
                break
            root = os.path.abspath(root)
            logger.info(f"Scanning {root}")
            try:
                self._scan_root(root, tracker, cancel_event, records)
            except OSError as e:
                logger.error(f"Error scanning {root}: {e}")
                tracker.emit(root, error_message=f"Error scanning {root}: {e}")

        if self._cancelled(cancel_event):
            logger.info(f"Scan cancelled after {tracker.files_scanned} files")
        else:
            logger.info(
                f"Scan finished: {tracker.files_scanned} files, "
                f"{tracker.bytes_scanned} bytes in {tracker.elapsed():.1f}s"
            )
        tracker.finish()
        return records

    def scan_path(
        self,
        path: str,
        progress: ProgressSink | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[FileRecord]:
        """Scan a single root."""
        return self.scan([path], progress, cancel_event)

    def stat_file(self, path: str, roots: Iterable[str] = ()) -> FileRecord | None:
        """Build a fresh record for ``path``.

        Returns None when the path is missing, is not a regular file, cannot
        be read or would be skipped by a scan of ``roots`` because of the
        exclude patterns.
        """
        path = os.path.abspath(path)
        if self.is_excluded(path, roots):
            return None
        try:
            st = os.stat(path, follow_symlinks=self.config.follow_symlinks)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug(f"Cannot stat {path}: {e}")
            return None
        if not stat.S_ISREG(st.st_mode):
            return None
        return self._make_record(path, st)

    def is_excluded(self, path: str, roots: Iterable[str] = ()) -> bool:
        """Check ``path`` the way a scan of ``roots`` would.

        Every component below the innermost enclosing root is matched, so a
        file inside an excluded directory is excluded too. A path outside
        all roots is matched on its own name and full path only.
        """
        if not self.config.exclude:
            return False
        path = os.path.abspath(path)
        enclosing = [
            root for root in (os.path.abspath(r) for r in roots) if is_within(path, root)
        ]
        if path in enclosing:
            # Roots themselves are never matched against excludes
            return False
        if not enclosing:
            return self._excluded(os.path.basename(path), path)

        current = max(enclosing, key=len)
        for part in os.path.relpath(path, current).split(os.sep):
            current = os.path.join(current, part)
            if self._excluded(part, current):
                return True
        return False

    @staticmethod
    def _cancelled(cancel_event: threading.Event | None) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    @staticmethod
    def _make_record(path: str, st: os.stat_result) -> FileRecord:
        name = os.path.basename(path)
        return FileRecord(
            path=path,
            name=name,
            directory=os.path.dirname(path),
            extension=os.path.splitext(name)[1].lower(),
            size_bytes=st.st_size,
            created_time=getattr(st, "st_birthtime", st.st_ctime),
            modified_time=st.st_mtime,
            scanned_time=time.time(),
        )

    def _excluded(self, name: str, path: str) -> bool:
        if not self.config.exclude:
            return False
        return should_exclude_entry(name, path, self.config.exclude, self._pattern_cache)

    def _scan_root(
        self,
        root: str,
        tracker: ProgressTracker,
        cancel_event: threading.Event | None,
        records: list[FileRecord],
    ) -> None:
        """Scan one root. Raises OSError only when the root itself is unreadable."""
        st = os.stat(root)

        if stat.S_ISREG(st.st_mode):
            record = self._make_record(root, st)
            records.append(record)
            tracker.record_file(record.size_bytes, root)
            return

        if not stat.S_ISDIR(st.st_mode):
            raise NotADirectoryError(f"Not a file or directory: {root}")

        visited: set[tuple[int, int]] = {(st.st_dev, st.st_ino)}
        self._walk(root, tracker, cancel_event, records, visited)

    def _walk(
        self,
        root: str,
        tracker: ProgressTracker,
        cancel_event: threading.Event | None,
        records: list[FileRecord],
        visited: set[tuple[int, int]],
    ) -> None:
        follow = self.config.follow_symlinks
        stack = [root]

        while stack:
            if self._cancelled(cancel_event):
                return
            directory = stack.pop()

            try:
                with os.scandir(directory) as it:
                    entries = list(it)
            except OSError as e:
                # An unlistable root is a per-root error
                if directory == root:
                    raise
                self._log_entry_error(directory, e)
                continue

            subdirectories: list[str] = []
            for entry in entries:
                if self._cancelled(cancel_event):
                    return
                try:
                    if entry.is_symlink() and not follow:
                        continue
                    if self._excluded(entry.name, entry.path):
                        continue
                    if entry.is_dir(follow_symlinks=follow):
                        if follow:
                            dir_stat = entry.stat(follow_symlinks=True)
                            key = (dir_stat.st_dev, dir_stat.st_ino)
                            if key in visited:
                                continue
                            visited.add(key)
                        subdirectories.append(entry.path)
                    elif entry.is_file(follow_symlinks=follow):
                        record = self._make_record(
                            entry.path, entry.stat(follow_symlinks=follow)
                        )
                        records.append(record)
                        tracker.record_file(record.size_bytes, entry.path)
                except OSError as e:
                    self._log_entry_error(entry.path, e)

            # Reversed so the first subdirectory is visited next
            stack.extend(reversed(subdirectories))

    @staticmethod
    def _log_entry_error(path: str, error: OSError) -> None:
        if isinstance(error, PermissionError):
            logger.debug(f"Access denied, skipping {path}")
        else:
            logger.warning(f"Skipping {path}: {error}")
