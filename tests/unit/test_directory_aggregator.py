"""Unit tests for DirectoryAggregator."""

import threading
from unittest.mock import Mock

import pytest

from localspace.core.models import DirectoryRecord, FileRecord
from localspace.core.types import RiskLevel
from localspace.services.directory_aggregator import DirectoryAggregator


def make_record(path: str, size: int, modified: float = 1000.0) -> FileRecord:
    directory, _, name = path.rpartition("/")
    extension = "." + name.rsplit(".", 1)[1] if "." in name else ""
    return FileRecord(
        path=path,
        name=name,
        directory=directory,
        extension=extension,
        size_bytes=size,
        created_time=modified,
        modified_time=modified,
        scanned_time=modified,
    )


class TestAggregate:
    """Test bottom-up rollups."""

    def test_totals_roll_up_to_every_ancestor(self, classifier):
        records = [
            make_record("/data/root/sub/a.txt", 10),
            make_record("/data/root/sub/b.txt", 20),
            make_record("/data/root/sub/c.txt", 30),
        ]

        directories = {d.path: d for d in DirectoryAggregator(classifier).aggregate(records)}

        for path in ("/data/root/sub", "/data/root", "/data", "/"):
            assert directories[path].total_size_bytes == 60
            assert directories[path].file_count == 3

    def test_sibling_directories_are_separate(self, classifier):
        records = [
            make_record("/data/left/a.txt", 5),
            make_record("/data/right/b.txt", 7),
        ]

        directories = {d.path: d for d in DirectoryAggregator(classifier).aggregate(records)}

        assert directories["/data/left"].total_size_bytes == 5
        assert directories["/data/right"].total_size_bytes == 7
        assert directories["/data"].total_size_bytes == 12
        assert directories["/data"].file_count == 2

    def test_last_modified_is_newest_descendant(self, classifier):
        records = [
            make_record("/data/root/old.txt", 1, modified=100.0),
            make_record("/data/root/sub/new.txt", 1, modified=500.0),
        ]

        directories = {d.path: d for d in DirectoryAggregator(classifier).aggregate(records)}

        assert directories["/data/root"].last_modified_time == 500.0
        assert directories["/data/root/sub"].last_modified_time == 500.0

    def test_parent_and_name(self, classifier):
        records = [make_record("/data/root/sub/a.txt", 1)]

        directories = {d.path: d for d in DirectoryAggregator(classifier).aggregate(records)}

        sub = directories["/data/root/sub"]
        assert sub.name == "sub"
        assert sub.parent_path == "/data/root"
        assert directories["/"].name == "/"

    def test_filesystem_root_has_no_parent(self, classifier):
        records = [make_record("/data/a.txt", 1)]

        directories = {d.path: d for d in DirectoryAggregator(classifier).aggregate(records)}

        assert directories["/"].parent_path == ""
        assert directories["/data"].parent_path == "/"

    def test_main_file_types_ranked_by_bytes(self, classifier):
        records = [
            make_record("/media/movie.mp4", 50),
            make_record("/media/app.log", 20),
            make_record("/media/notes.txt", 10),
            make_record("/media/bundle.zip", 5),
            make_record("/media/icon.png", 1),
        ]

        directories = {d.path: d for d in DirectoryAggregator(classifier).aggregate(records)}

        assert directories["/media"].main_file_types == "Video, Document/Log, Archive"

    def test_directories_are_classified_without_extension_rules(self, classifier):
        records = [
            make_record("/home/me/AppData/settings.ini", 1),
            make_record("/home/me/drivers.dll/readme.txt", 1),
        ]

        directories = {d.path: d for d in DirectoryAggregator(classifier).aggregate(records)}

        assert directories["/home/me/AppData"].risk_level == RiskLevel.REVIEW
        assert directories["/home/me/drivers.dll"].risk_level == RiskLevel.SAFE
        assert directories["/home/me/drivers.dll"].risk_explanation

    def test_empty_input(self, classifier):
        assert DirectoryAggregator(classifier).aggregate([]) == []


class TestPersist:
    """Test batched writes to the store."""

    def setup_method(self):
        self.directories = [
            DirectoryRecord(path=f"/d{i}", name=f"d{i}", parent_path="/") for i in range(5)
        ]

    def test_writes_in_batches(self, classifier):
        store = Mock()
        progress = []

        written = DirectoryAggregator(classifier, batch_size=2).persist(
            store, self.directories, on_batch=lambda done, total: progress.append((done, total))
        )

        assert written == 5
        assert store.insert_directories.call_count == 3
        assert [len(c.args[0]) for c in store.insert_directories.call_args_list] == [2, 2, 1]
        assert progress == [(2, 5), (4, 5), (5, 5)]

    def test_cancel_stops_between_batches(self, classifier):
        store = Mock()
        cancel = threading.Event()
        cancel.set()

        written = DirectoryAggregator(classifier, batch_size=2).persist(
            store, self.directories, cancel
        )

        assert written == 0
        store.insert_directories.assert_not_called()

    def test_store_errors_propagate(self, classifier):
        store = Mock()
        store.insert_directories.side_effect = RuntimeError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            DirectoryAggregator(classifier).persist(store, self.directories)
