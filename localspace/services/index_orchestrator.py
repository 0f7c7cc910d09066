"""Index orchestrator for LocalSpace - runs the initial scan and live updates.

# FILE_CONTEXT: Central orchestrator for the scan→persist→aggregate→monitor pipeline
# ROLE: Owns the index state machine and the single-writer live-update loop
# CONCURRENCY: Scan, persistence and aggregation run in a worker thread;
#   live updates run on the event loop, one at a time, under one lock
# CONSISTENCY: Directory aggregates are computed only by the initial scan.
#   Live updates touch file records only, so directory totals go stale
#   until the next full scan.
"""

import asyncio
import os
import threading
import time
from collections.abc import Awaitable, Callable, Iterable

from loguru import logger

from localspace.core.config.config import Config
from localspace.core.exceptions import IndexingError
from localspace.core.models import ChangeEvent, FileRecord, ScanProgress, ScanSummary
from localspace.core.types import ChangeKind, IndexState
from localspace.interfaces.file_store import FileStore
from localspace.services.change_monitor import ChangeMonitor
from localspace.services.directory_aggregator import DirectoryAggregator
from localspace.services.risk_classifier import RiskClassifier
from localspace.services.scanner import Scanner
from localspace.utils.file_patterns import is_within

ProgressListener = Callable[[ScanProgress], None]
CompleteListener = Callable[[ScanSummary], None]

CANCELLED_MESSAGE = "Scan cancelled"


def normalize_roots(paths: Iterable[str]) -> list[str]:
    """Absolute, de-duplicated roots with nested roots removed (input order kept)."""
    absolute = list(dict.fromkeys(os.path.abspath(p) for p in paths))
    return [
        root
        for root in absolute
        if not any(other != root and is_within(root, other) for other in absolute)
    ]


class _ProgressRelay:
    """Per-run view of progress that keeps reported percent non-decreasing.

    The scanner's own terminal snapshot is not passed on as complete because
    persistence and aggregation still follow it.
    """

    def __init__(self, emit: ProgressListener, clock: Callable[[], float] = time.monotonic):
        self._emit = emit
        self._clock = clock
        self._started = clock()
        self.last = ScanProgress()

    def _send(self, progress: ScanProgress) -> None:
        self.last = progress
        self._emit(progress)

    def _elapsed(self) -> float:
        return self._clock() - self._started

    def scan(self, progress: ScanProgress) -> None:
        if progress.is_complete:
            percent = self.last.percent_complete
        else:
            percent = max(self.last.percent_complete, progress.percent_complete)
        self._send(progress.evolve(percent_complete=percent, is_complete=False))

    def phase(self, phase: str, current_path: str) -> None:
        self._send(
            self.last.evolve(
                phase=phase,
                current_path=current_path,
                percent_complete=max(self.last.percent_complete, 99.0),
                remaining_seconds=0.0,
                elapsed_seconds=self._elapsed(),
                is_complete=False,
                error_message=None,
            )
        )

    def complete(self) -> None:
        self._send(
            self.last.evolve(
                phase="complete",
                current_path="",
                percent_complete=100.0,
                remaining_seconds=0.0,
                elapsed_seconds=self._elapsed(),
                is_complete=True,
                error_message=None,
            )
        )

    def terminate(self, phase: str, message: str) -> None:
        """Terminal snapshot for a cancelled or failed run; percent is kept."""
        self._send(
            self.last.evolve(
                phase=phase,
                current_path="",
                remaining_seconds=0.0,
                elapsed_seconds=self._elapsed(),
                is_complete=True,
                error_message=message,
            )
        )


class IndexOrchestrator:
    """Coordinates the initial scan and keeps the index live afterwards.

    States: IDLE → SCANNING → PERSISTING → AGGREGATING → MONITORING. A new
    ``initial_scan`` request cancels a running one and starts over from IDLE.

    Progress and completion listeners may be called from a worker thread.
    """

    def __init__(
        self,
        store: FileStore,
        scanner: Scanner,
        aggregator: DirectoryAggregator,
        classifier: RiskClassifier,
        monitor: ChangeMonitor,
        config: Config | None = None,
    ):
        self.store = store
        self.scanner = scanner
        self.aggregator = aggregator
        self.classifier = classifier
        self.monitor = monitor
        self.config = config or Config()

        self.state = IndexState.IDLE
        self.last_error: Exception | None = None
        self.stats = {"applied": 0, "dropped": 0, "failed": 0}
        # Roots of the current index; live updates honour excludes relative to them
        self.roots: list[str] = []

        self._scan_lock = asyncio.Lock()
        self._update_lock = asyncio.Lock()
        self._current_cancel: threading.Event | None = None
        self._update_task: asyncio.Task | None = None
        self._progress_listeners: list[ProgressListener] = []
        self._complete_listeners: list[CompleteListener] = []

        self._handlers: dict[ChangeKind, Callable[[ChangeEvent], Awaitable[bool]]] = {
            ChangeKind.CREATED: self._apply_upsert,
            ChangeKind.MODIFIED: self._apply_upsert,
            ChangeKind.RENAMED: self._apply_upsert,
            ChangeKind.DELETED: self._apply_delete,
        }

    # Listeners

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._progress_listeners.append(listener)

    def add_complete_listener(self, listener: CompleteListener) -> None:
        self._complete_listeners.append(listener)

    def _emit_progress(self, progress: ScanProgress) -> None:
        for listener in list(self._progress_listeners):
            try:
                listener(progress)
            except Exception as e:
                logger.warning(f"Progress listener failed: {e}")

    def _emit_complete(self, summary: ScanSummary) -> None:
        for listener in list(self._complete_listeners):
            try:
                listener(summary)
            except Exception as e:
                logger.warning(f"Completion listener failed: {e}")

    def _set_state(self, state: IndexState) -> None:
        if state != self.state:
            logger.debug(f"Index state {self.state.value} -> {state.value}")
        self.state = state

    # Initial scan

    async def initial_scan(
        self, paths: Iterable[str], cancel_event: threading.Event | None = None
    ) -> ScanSummary:
        """Rebuild the index from scratch for ``paths``.

        Clears the store, scans, persists file records in batches, aggregates
        directories, reports completion and then (if enabled) starts live
        monitoring of the same roots.

        Raises:
            IndexingError: The scan or a store write failed. Batches written
                before the failure are kept.
        """
        previous = self._current_cancel
        if previous is not None and not previous.is_set():
            logger.info("New scan requested; cancelling the running scan")
            previous.set()

        cancel = cancel_event if cancel_event is not None else threading.Event()
        self._current_cancel = cancel

        async with self._scan_lock:
            try:
                return await self._run_initial_scan(list(paths), cancel)
            finally:
                if self._current_cancel is cancel:
                    self._current_cancel = None

    async def _run_initial_scan(
        self, paths: list[str], cancel: threading.Event
    ) -> ScanSummary:
        roots = normalize_roots(paths)
        started = time.monotonic()
        summary = ScanSummary(roots=roots)
        relay = _ProgressRelay(self._emit_progress)
        loop = asyncio.get_running_loop()

        await self.stop_monitoring()
        self._set_state(IndexState.IDLE)
        self.last_error = None
        self.roots = roots
        logger.info(f"Starting initial scan of {len(roots)} root(s)")

        try:
            self._set_state(IndexState.SCANNING)
            await loop.run_in_executor(None, self.store.clear_all)
            records = await loop.run_in_executor(
                None, self.scanner.scan, roots, relay.scan, cancel
            )

            if not cancel.is_set():
                self._set_state(IndexState.PERSISTING)
                await loop.run_in_executor(
                    None, self._persist_files, records, cancel, relay, summary
                )

            if not cancel.is_set():
                self._set_state(IndexState.AGGREGATING)
                summary.directories_indexed = await loop.run_in_executor(
                    None, self._aggregate, records, cancel, relay
                )
        except asyncio.CancelledError:
            cancel.set()
            self._set_state(IndexState.IDLE)
            raise
        except Exception as e:
            logger.error(f"Initial scan failed: {e}")
            self.last_error = e
            relay.terminate("failed", f"Initial scan failed: {e}")
            self._set_state(IndexState.IDLE)
            raise IndexingError(f"Initial scan failed: {e}") from e

        summary.elapsed_seconds = time.monotonic() - started

        if cancel.is_set():
            summary.cancelled = True
            logger.info(
                f"Initial scan cancelled; {summary.files_indexed} files were saved"
            )
            relay.terminate("cancelled", CANCELLED_MESSAGE)
            self._set_state(IndexState.IDLE)
            return summary

        logger.info(
            f"Initial scan complete: {summary.files_indexed} files, "
            f"{summary.directories_indexed} directories in {summary.elapsed_seconds:.1f}s"
        )
        relay.complete()
        self._set_state(IndexState.IDLE)
        self._emit_complete(summary)

        if self.config.monitor.enabled:
            await self.start_monitoring(roots)

        return summary

    def _persist_files(
        self,
        records: list[FileRecord],
        cancel: threading.Event,
        relay: _ProgressRelay,
        summary: ScanSummary,
    ) -> None:
        """Classify and write file records in batches; stops between batches on cancel."""
        batch_size = self.config.indexing.file_batch_size
        total = len(records)

        for start in range(0, total, batch_size):
            if cancel.is_set():
                logger.info(f"Persistence cancelled at {summary.files_indexed} / {total}")
                return
            batch = records[start : start + batch_size]
            for record in batch:
                record.risk_level, record.risk_explanation = self.classifier.classify(
                    record.path, is_directory=False
                )
            self.store.insert_files(batch)
            summary.files_indexed += len(batch)
            summary.bytes_indexed += sum(record.size_bytes for record in batch)
            relay.phase(
                "persisting", f"Saving to database: {summary.files_indexed} / {total}"
            )

    def _aggregate(
        self, records: list[FileRecord], cancel: threading.Event, relay: _ProgressRelay
    ) -> int:
        relay.phase("aggregating", "Aggregating directories")
        directories = self.aggregator.aggregate(records)
        return self.aggregator.persist(
            self.store,
            directories,
            cancel,
            on_batch=lambda written, total: relay.phase(
                "aggregating", f"Aggregating directories: {written} / {total}"
            ),
        )

    # Live monitoring

    @property
    def is_monitoring(self) -> bool:
        return self._update_task is not None and not self._update_task.done()

    async def start_monitoring(self, paths: Iterable[str]) -> None:
        """Watch ``paths`` and apply changes to the store as they arrive."""
        if self.is_monitoring:
            logger.warning("Live monitoring already running")
            return

        roots = normalize_roots(paths)
        await self.monitor.start(roots)
        if not self.monitor.is_active:
            return

        self.roots = roots
        self._update_task = asyncio.create_task(self._update_loop())
        self._set_state(IndexState.MONITORING)

    async def stop_monitoring(self) -> None:
        task = self._update_task
        self._update_task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self.monitor.stop()
        if self.state == IndexState.MONITORING:
            self._set_state(IndexState.IDLE)

    async def _update_loop(self) -> None:
        logger.debug("Live update loop started")
        async for event in self.monitor.events():
            await self.apply_change(event)

    async def apply_change(self, event: ChangeEvent) -> bool:
        """Apply one change event to the store.

        Returns True when the store was changed. Failures are logged and
        counted; they never propagate.
        """
        handler = self._handlers.get(event.kind)
        if handler is None:
            logger.warning(f"No handler for change kind {event.kind}")
            return False

        async with self._update_lock:
            try:
                applied = await handler(event)
            except Exception as e:
                self.stats["failed"] += 1
                logger.error(f"Live update failed for {event.path}: {e}")
                return False

        self.stats["applied" if applied else "dropped"] += 1
        return applied

    async def _apply_upsert(self, event: ChangeEvent) -> bool:
        # Let the writer finish before reading the file
        await asyncio.sleep(self.config.monitor.settle_delay_seconds)

        loop = asyncio.get_running_loop()
        record = await loop.run_in_executor(
            None, self.scanner.stat_file, event.path, list(self.roots)
        )
        if record is None:
            logger.debug(
                f"Dropping {event.kind.value} for {event.path}: not an indexable file"
            )
            return False

        record.risk_level, record.risk_explanation = self.classifier.classify(
            record.path, is_directory=False
        )
        await loop.run_in_executor(None, self.store.upsert_file, record)
        logger.debug(f"Updated {record.path} ({record.size_bytes} bytes)")
        return True

    async def _apply_delete(self, event: ChangeEvent) -> bool:
        loop = asyncio.get_running_loop()
        deleted = await loop.run_in_executor(None, self.store.delete_file, event.path)
        if deleted:
            logger.debug(f"Removed {event.path}")
        return deleted

    def get_stats(self) -> dict:
        """Current state, live-update counters and store totals."""
        return {
            "state": self.state.value,
            "monitoring": self.monitor.is_active,
            "watched_paths": list(self.monitor.watched_paths),
            "queue_depth": self.monitor.queue_depth,
            "dropped_events": self.monitor.dropped_events,
            "last_error": str(self.last_error) if self.last_error else None,
            **self.stats,
            "store": self.store.get_stats(),
        }

    async def close(self) -> None:
        """Stop monitoring and cancel any running scan."""
        if self._current_cancel is not None:
            self._current_cancel.set()
        await self.stop_monitoring()
