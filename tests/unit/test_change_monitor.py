"""Unit tests for the change monitor, its watchdog handler and the debouncer.

The watchdog observer is replaced by a mock so events are injected through
the handler directly and no filesystem notifications are involved.
"""

import asyncio
from unittest.mock import Mock

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from localspace.core.config.monitor_config import MonitorConfig
from localspace.core.models import ChangeEvent
from localspace.core.types import ChangeKind
from localspace.services.change_monitor import ChangeEventHandler, ChangeMonitor, Debouncer


class FakeClock:
    def __init__(self, start: float = 50.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


async def next_event(monitor: ChangeMonitor, stream=None, timeout: float = 1.0) -> ChangeEvent:
    stream = stream or monitor.events()
    return await asyncio.wait_for(stream.__anext__(), timeout=timeout)


class TestDebouncer:
    """Test per-path suppression windows and pruning."""

    def setup_method(self):
        self.clock = FakeClock()
        self.debouncer = Debouncer(
            window=0.5, prune_after=5.0, prune_interval=1.0, clock=self.clock
        )

    def test_repeat_within_window_is_suppressed(self):
        assert self.debouncer.should_emit("/a")
        self.clock.now += 0.3
        assert not self.debouncer.should_emit("/a")

    def test_events_outside_window_both_emit(self):
        assert self.debouncer.should_emit("/a")
        self.clock.now += 0.6
        assert self.debouncer.should_emit("/a")

    def test_suppressed_events_do_not_extend_window(self):
        assert self.debouncer.should_emit("/a")
        self.clock.now += 0.3
        assert not self.debouncer.should_emit("/a")
        self.clock.now += 0.25
        assert self.debouncer.should_emit("/a")

    def test_paths_are_independent(self):
        assert self.debouncer.should_emit("/a")
        assert self.debouncer.should_emit("/b")

    def test_prune_drops_stale_entries(self):
        self.debouncer.should_emit("/a")
        self.debouncer.should_emit("/b")
        self.clock.now += 6.0

        assert self.debouncer.prune() == 2
        assert len(self.debouncer) == 0

    def test_prune_runs_during_should_emit(self):
        self.debouncer.should_emit("/a")
        self.clock.now += 6.0
        self.debouncer.should_emit("/b")

        assert len(self.debouncer) == 1

    def test_clear(self):
        self.debouncer.should_emit("/a")
        self.debouncer.clear()
        assert self.debouncer.should_emit("/a")


class TestChangeMonitor:
    """Test event normalization and queue delivery."""

    def setup_method(self):
        self.observer = Mock()
        self.factory = Mock(return_value=self.observer)
        self.errors = []

    def _monitor(self, **config) -> ChangeMonitor:
        monitor = ChangeMonitor(MonitorConfig(**config), observer_factory=self.factory)
        monitor.add_error_listener(lambda message, error: self.errors.append(message))
        return monitor

    @pytest.mark.asyncio
    async def test_start_schedules_recursive_watch(self, tree):
        monitor = self._monitor()

        await monitor.start([str(tree)])

        assert monitor.is_active
        assert monitor.watched_paths == [str(tree)]
        args, kwargs = self.observer.schedule.call_args
        assert args[1] == str(tree)
        assert kwargs["recursive"] is True
        self.observer.start.assert_called_once()

        await monitor.stop()

        assert not monitor.is_active
        self.observer.stop.assert_called_once()
        self.observer.join.assert_called_once()

    @pytest.mark.asyncio
    async def test_start_while_active_is_ignored(self, tree):
        monitor = self._monitor()

        await monitor.start([str(tree)])
        await monitor.start([str(tree / "sub")])

        assert self.factory.call_count == 1
        assert monitor.watched_paths == [str(tree)]
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_missing_path_is_reported(self, temp_dir):
        monitor = self._monitor()

        await monitor.start([str(temp_dir / "gone")])

        assert not monitor.is_active
        assert any("gone" in message for message in self.errors)
        self.observer.start.assert_not_called()

    @pytest.mark.asyncio
    async def test_file_root_watches_parent(self, tree):
        monitor = self._monitor()
        target = str(tree / "a.txt")

        await monitor.start([target])

        args, kwargs = self.observer.schedule.call_args
        handler = args[0]
        assert args[1] == str(tree)
        assert kwargs["recursive"] is False

        handler.on_any_event(FileModifiedEvent(str(tree / "other.txt")))
        assert monitor.queue_depth == 0

        handler.on_any_event(FileModifiedEvent(target))
        event = await next_event(monitor)
        assert event == ChangeEvent(ChangeKind.MODIFIED, target)
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_created_modified_deleted_pass_through(self, tree):
        monitor = self._monitor(debounce_ms=0)
        await monitor.start([str(tree)])
        handler = ChangeEventHandler(monitor)
        path = str(tree / "new.bin")
        stream = monitor.events()

        handler.on_any_event(FileCreatedEvent(path))
        handler.on_any_event(FileModifiedEvent(path))
        handler.on_any_event(FileDeletedEvent(path))

        kinds = [(await next_event(monitor, stream)).kind for _ in range(3)]
        assert kinds == [ChangeKind.CREATED, ChangeKind.MODIFIED, ChangeKind.DELETED]
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_directory_modified_events_are_skipped(self, tree):
        monitor = self._monitor()
        await monitor.start([str(tree)])
        handler = ChangeEventHandler(monitor)

        handler.on_any_event(DirModifiedEvent(str(tree / "sub")))

        assert monitor.queue_depth == 0
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_rename_becomes_delete_then_rename(self, tree):
        monitor = self._monitor()
        await monitor.start([str(tree)])
        handler = ChangeEventHandler(monitor)
        old = str(tree / "a.txt")
        new = str(tree / "renamed.txt")
        stream = monitor.events()

        handler.on_any_event(FileMovedEvent(old, new))

        first = await next_event(monitor, stream)
        second = await next_event(monitor, stream)
        assert first == ChangeEvent(ChangeKind.DELETED, old)
        assert second == ChangeEvent(ChangeKind.RENAMED, new, old_path=old)
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_repeated_events_are_debounced(self, tree):
        monitor = self._monitor(debounce_ms=10_000)
        await monitor.start([str(tree)])
        path = str(tree / "a.txt")

        for _ in range(5):
            monitor.submit(ChangeEvent(ChangeKind.MODIFIED, path))

        assert monitor.queue_depth == 1
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_full_queue_drops_and_reports(self, tree):
        monitor = self._monitor(queue_size=1, debounce_ms=0)
        await monitor.start([str(tree)])

        monitor.submit(ChangeEvent(ChangeKind.CREATED, str(tree / "one")))
        monitor.submit(ChangeEvent(ChangeKind.CREATED, str(tree / "two")))

        assert monitor.queue_depth == 1
        assert monitor.dropped_events == 1
        assert any("queue full" in message for message in self.errors)
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_submit_from_worker_thread(self, tree):
        monitor = self._monitor()
        await monitor.start([str(tree)])
        event = ChangeEvent(ChangeKind.CREATED, str(tree / "threaded.txt"))

        await asyncio.to_thread(monitor.submit, event)

        assert await next_event(monitor) == event
        await monitor.stop()

    @pytest.mark.asyncio
    async def test_stop_discards_pending_events(self, tree):
        monitor = self._monitor()
        await monitor.start([str(tree)])
        monitor.submit(ChangeEvent(ChangeKind.CREATED, str(tree / "pending")))

        await monitor.stop()

        assert monitor.queue_depth == 0
        assert len(monitor.debouncer) == 0

    def test_submit_before_start_is_dropped(self, tree):
        monitor = self._monitor()

        monitor.submit(ChangeEvent(ChangeKind.CREATED, str(tree / "early")))

        assert monitor.dropped_events == 1
        assert self.errors

    @pytest.mark.asyncio
    async def test_handler_errors_go_to_listeners(self, tree):
        monitor = self._monitor()
        await monitor.start([str(tree)])
        handler = ChangeEventHandler(monitor)
        broken = Mock(event_type="created", is_directory=False, src_path=None)

        handler.on_any_event(broken)

        assert self.errors
        assert monitor.queue_depth == 0
        await monitor.stop()
