"""Filesystem change monitoring.

Watchdog delivers events on its own observer thread. The handler normalizes
them into ChangeEvent values, drops repeats through a per-path debouncer and
hands them to a bounded asyncio queue that a single consumer drains through
``ChangeMonitor.events()``.

Architecture:
- One watchdog Observer, one recursive watch per root
- Renames become DELETED(old path) followed by RENAMED(new path)
- Watcher failures go to error listeners and the log, never into the queue
"""

import asyncio
import concurrent.futures
import os
import threading
import time
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from localspace.core.config.monitor_config import MonitorConfig
from localspace.core.models import ChangeEvent
from localspace.core.types import ChangeKind

ErrorListener = Callable[[str, BaseException | None], None]


class Debouncer:
    """Suppresses events for a path seen within the last ``window`` seconds.

    Only accepted events refresh a path's timestamp. Entries older than
    ``prune_after`` are dropped at most once per ``prune_interval``.
    Thread-safe.
    """

    def __init__(
        self,
        window: float = 0.5,
        prune_after: float = 5.0,
        prune_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window
        self.prune_after = prune_after
        self.prune_interval = prune_interval
        self._clock = clock
        self._lock = threading.Lock()
        self._last_seen: dict[str, float] = {}
        self._last_prune = clock()

    def should_emit(self, path: str) -> bool:
        now = self._clock()
        with self._lock:
            if now - self._last_prune >= self.prune_interval:
                self._prune_locked(now)

            last = self._last_seen.get(path)
            if last is not None and now - last < self.window:
                return False
            self._last_seen[path] = now
            return True

    def prune(self) -> int:
        """Drop stale entries now; returns how many were removed."""
        with self._lock:
            return self._prune_locked(self._clock())

    def _prune_locked(self, now: float) -> int:
        stale = [p for p, seen in self._last_seen.items() if now - seen > self.prune_after]
        for path in stale:
            del self._last_seen[path]
        self._last_prune = now
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._last_seen.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_seen)


class ChangeEventHandler(FileSystemEventHandler):
    """Translate watchdog events into ChangeEvents for one watched root.

    When ``only_path`` is set the handler watches a single file through its
    parent directory and ignores every other path.
    """

    def __init__(self, monitor: "ChangeMonitor", only_path: str | None = None):
        super().__init__()
        self.monitor = monitor
        self.only_path = only_path

    def on_any_event(self, event: FileSystemEvent) -> None:
        try:
            self._dispatch(event)
        except Exception as e:
            self.monitor.report_error(f"Failed to handle {event.event_type} event", e)

    def _dispatch(self, event: FileSystemEvent) -> None:
        src_path = os.fsdecode(event.src_path)
        is_directory = event.is_directory

        if event.event_type == EVENT_TYPE_MOVED:
            dest_path = os.fsdecode(event.dest_path)
            if not (self._relevant(src_path) or self._relevant(dest_path)):
                return
            self.monitor.submit_move(src_path, dest_path, is_directory)
            return

        if not self._relevant(src_path):
            return

        if event.event_type == EVENT_TYPE_CREATED:
            kind = ChangeKind.CREATED
        elif event.event_type == EVENT_TYPE_MODIFIED:
            # Directory mtime changes only echo changes to their children
            if is_directory:
                return
            kind = ChangeKind.MODIFIED
        elif event.event_type == EVENT_TYPE_DELETED:
            kind = ChangeKind.DELETED
        else:
            return

        self.monitor.submit(ChangeEvent(kind, src_path, is_directory=is_directory))

    def _relevant(self, path: str) -> bool:
        return self.only_path is None or path == self.only_path


class ChangeMonitor:
    """Watches root paths and streams normalized, debounced change events."""

    def __init__(
        self,
        config: MonitorConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
        observer_factory: Callable[[], Any] = Observer,
    ):
        self.config = config or MonitorConfig()
        self.debouncer = Debouncer(
            window=self.config.debounce_seconds,
            prune_after=self.config.prune_after_seconds,
            prune_interval=self.config.prune_interval_seconds,
            clock=clock,
        )
        self._observer_factory = observer_factory
        self._observer: Any | None = None
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=self.config.queue_size)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread_id: int | None = None
        self._error_listeners: list[ErrorListener] = []
        self._active = False
        self.watched_paths: list[str] = []
        self.dropped_events = 0

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def queue_depth(self) -> int:
        return self._queue.qsize()

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    async def start(self, paths: Iterable[str]) -> None:
        """Begin watching ``paths``.

        Calling start while already active only logs a warning.
        """
        if self._active:
            logger.warning("Change monitor already active; ignoring start request")
            return

        # Clear anything left over from a previous watch set
        await self.stop()

        self._loop = asyncio.get_running_loop()
        self._loop_thread_id = threading.get_ident()
        self._queue = asyncio.Queue(maxsize=self.config.queue_size)

        observer = self._observer_factory()
        watched: list[str] = []
        for root in paths:
            root = os.path.abspath(root)
            try:
                if os.path.isdir(root):
                    observer.schedule(ChangeEventHandler(self), root, recursive=True)
                elif os.path.isfile(root):
                    observer.schedule(
                        ChangeEventHandler(self, only_path=root),
                        os.path.dirname(root),
                        recursive=False,
                    )
                else:
                    self.report_error(f"Cannot watch missing path {root}", None)
                    continue
            except OSError as e:
                self.report_error(f"Failed to watch {root}", e)
                continue
            watched.append(root)

        if not watched:
            logger.warning("No paths could be watched; change monitor not started")
            return

        observer.start()
        self._observer = observer
        self.watched_paths = watched
        self._active = True
        logger.info(f"Monitoring {len(watched)} path(s) for changes")

    async def stop(self) -> None:
        """Stop watching and discard queued events and debounce state."""
        observer = self._observer
        self._observer = None
        was_active = self._active
        self._active = False

        if observer is not None:
            # Join off the loop: the observer thread may be waiting on it
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._join_observer, observer)

        while not self._queue.empty():
            self._queue.get_nowait()
        self.debouncer.clear()
        self.watched_paths = []

        if was_active:
            logger.info("Change monitoring stopped")

    @staticmethod
    def _join_observer(observer: Any) -> None:
        observer.stop()
        observer.join(timeout=5.0)

    async def events(self) -> AsyncIterator[ChangeEvent]:
        """Yield change events in delivery order. Iterate after ``start``."""
        while True:
            event = await self._queue.get()
            yield event

    def submit(self, event: ChangeEvent) -> None:
        """Debounce and enqueue one event. Callable from any thread."""
        if not self.debouncer.should_emit(event.path):
            logger.debug(f"Debounced {event.kind.value} event for {event.path}")
            return
        self._enqueue(event)

    def submit_move(self, src_path: str, dest_path: str, is_directory: bool = False) -> None:
        """Enqueue a rename as DELETED(old) then RENAMED(new)."""
        if not self.debouncer.should_emit(dest_path):
            logger.debug(f"Debounced rename {src_path} -> {dest_path}")
            return
        self._enqueue(ChangeEvent(ChangeKind.DELETED, src_path, is_directory=is_directory))
        self._enqueue(
            ChangeEvent(
                ChangeKind.RENAMED, dest_path, old_path=src_path, is_directory=is_directory
            )
        )

    def _enqueue(self, event: ChangeEvent) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self.report_error(f"Change monitor not running; dropped event for {event.path}", None)
            self.dropped_events += 1
            return

        if threading.get_ident() == self._loop_thread_id:
            try:
                self._queue.put_nowait(event)
            except asyncio.QueueFull as e:
                self.dropped_events += 1
                self.report_error(f"Change queue full; dropped event for {event.path}", e)
            return

        future = asyncio.run_coroutine_threadsafe(self._queue.put(event), loop)
        try:
            future.result(timeout=self.config.put_timeout_seconds)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            self.dropped_events += 1
            self.report_error(f"Change queue full; dropped event for {event.path}", e)
        except (concurrent.futures.CancelledError, RuntimeError) as e:
            self.dropped_events += 1
            self.report_error(f"Failed to queue event for {event.path}", e)

    def report_error(self, message: str, error: BaseException | None) -> None:
        """Send a watcher error to the log and to error listeners."""
        if error is not None:
            logger.error(f"{message}: {error}")
        else:
            logger.error(message)
        for listener in list(self._error_listeners):
            try:
                listener(message, error)
            except Exception as e:
                logger.warning(f"Change monitor error listener failed: {e}")
