"""Directory rollups computed from file records."""

import os
import threading
from collections import defaultdict
from collections.abc import Callable, Iterable

from loguru import logger

from localspace.core.models import DirectoryRecord, FileRecord
from localspace.interfaces.file_store import FileStore
from localspace.services.risk_classifier import RiskClassifier


class DirectoryAggregator:
    """Builds one DirectoryRecord per ancestor directory of the input files.

    Every file contributes to its parent and to each directory above it up to
    the filesystem root, so totals are correct bottom-up in a single pass.
    """

    def __init__(self, classifier: RiskClassifier, batch_size: int = 1000):
        self._classifier = classifier
        self._batch_size = batch_size

    def aggregate(self, records: Iterable[FileRecord]) -> list[DirectoryRecord]:
        directories: dict[str, DirectoryRecord] = {}
        category_bytes: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))

        for record in records:
            category = self._classifier.get_category(record.extension)
            for directory in self._ancestors(record.directory):
                entry = directories.get(directory)
                if entry is None:
                    entry = self._new_record(directory)
                    directories[directory] = entry
                entry.total_size_bytes += record.size_bytes
                entry.file_count += 1
                if record.modified_time > entry.last_modified_time:
                    entry.last_modified_time = record.modified_time
                category_bytes[directory][category] += record.size_bytes

        for path, entry in directories.items():
            entry.main_file_types = self._main_types(category_bytes[path])

        logger.debug(f"Aggregated {len(directories)} directories")
        return list(directories.values())

    def persist(
        self,
        store: FileStore,
        directories: list[DirectoryRecord],
        cancel_event: threading.Event | None = None,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> int:
        """Write directories in fixed-size batches; returns how many were written.

        Stops between batches when ``cancel_event`` is set. Store errors
        propagate to the caller.
        """
        written = 0
        total = len(directories)
        for start in range(0, total, self._batch_size):
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Directory persistence cancelled at {written} / {total}")
                break
            batch = directories[start : start + self._batch_size]
            store.insert_directories(batch)
            written += len(batch)
            if on_batch is not None:
                on_batch(written, total)
        return written

    @staticmethod
    def _ancestors(directory: str) -> Iterable[str]:
        """Yield ``directory`` and each parent up to and including the root."""
        current = directory
        while current:
            yield current
            parent = os.path.dirname(current)
            if parent == current:
                break
            current = parent

    def _new_record(self, path: str) -> DirectoryRecord:
        level, explanation = self._classifier.classify(path, is_directory=True)
        parent = os.path.dirname(path)
        return DirectoryRecord(
            path=path,
            name=os.path.basename(path) or path,
            # The filesystem root has no parent
            parent_path="" if parent == path else parent,
            risk_level=level,
            risk_explanation=explanation,
        )

    @staticmethod
    def _main_types(category_bytes: dict[str, int]) -> str:
        ranked = sorted(category_bytes.items(), key=lambda item: (-item[1], item[0]))
        return ", ".join(category for category, _ in ranked[:3])
