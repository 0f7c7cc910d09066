"""Tests for the CLI commands, driven through ``async_main``."""

import time

import pytest

from localspace.api.cli.main import async_main
from localspace.core.models import FileRecord
from localspace.providers.database.duckdb_provider import DuckDBProvider

DAY = 86400


def seed(db_path, records):
    store = DuckDBProvider(db_path)
    store.connect()
    try:
        store.insert_files(records)
    finally:
        store.disconnect()


def record(path: str, size: int, age_days: float = 0) -> FileRecord:
    modified = time.time() - age_days * DAY
    directory, _, name = path.rpartition("/")
    return FileRecord(
        path=path,
        name=name,
        directory=directory,
        extension="." + name.rsplit(".", 1)[-1],
        size_bytes=size,
        created_time=modified,
        modified_time=modified,
        scanned_time=time.time(),
    )


class TestQueryCommands:
    """Test the read-only commands against a seeded database."""

    @pytest.fixture(autouse=True)
    def _paths(self, temp_dir, clean_environment):
        self.db_path = temp_dir / "index.duckdb"
        self.common = ["--db", str(self.db_path), "--risk-config", str(temp_dir / "risk.json")]
        seed(
            self.db_path,
            [
                record("/d/small.txt", 10),
                record("/d/huge.iso", 5000, age_days=400),
                record("/d/mid.mp4", 500),
            ],
        )

    @pytest.mark.asyncio
    async def test_files_by_size(self, capsys):
        await async_main(["files", "--page-size", "2", *self.common])

        out = capsys.readouterr().out
        assert "huge.iso" in out
        assert "mid.mp4" in out
        assert "small.txt" not in out

    @pytest.mark.asyncio
    async def test_files_second_page(self, capsys):
        await async_main(["files", "--page", "2", "--page-size", "2", *self.common])

        out = capsys.readouterr().out
        assert "small.txt" in out
        assert "huge.iso" not in out

    @pytest.mark.asyncio
    async def test_cleanup_uses_explicit_thresholds(self, capsys):
        await async_main(
            ["cleanup", "--min-size", "1000", "--min-age-days", "30", *self.common]
        )

        out = capsys.readouterr().out
        assert "huge.iso" in out
        assert "mid.mp4" not in out

    @pytest.mark.asyncio
    async def test_stats(self, capsys):
        await async_main(["stats", *self.common])

        out = capsys.readouterr().out
        assert "Files:" in out
        assert "3" in out

    @pytest.mark.asyncio
    async def test_risk(self, capsys):
        await async_main(["risk", "/home/me/setup.exe", *self.common])

        out = capsys.readouterr().out
        assert "Review" in out
        assert "Executable" in out


class TestScanCommand:
    """Test a full scan through the CLI without monitoring."""

    @pytest.mark.asyncio
    async def test_scan_populates_database(self, tree, temp_dir, clean_environment, capsys):
        db_path = temp_dir / "scan.duckdb"

        await async_main(
            [
                "scan",
                str(tree),
                "--db",
                str(db_path),
                "--risk-config",
                str(temp_dir / "risk.json"),
            ]
        )

        assert "Scan Complete" in capsys.readouterr().out
        store = DuckDBProvider(db_path)
        store.connect()
        try:
            assert store.count_files() == 3
        finally:
            store.disconnect()

    @pytest.mark.asyncio
    async def test_scan_missing_path_exits(self, temp_dir, clean_environment):
        with pytest.raises(SystemExit) as exc_info:
            await async_main(
                ["scan", str(temp_dir / "missing"), "--db", str(temp_dir / "x.duckdb")]
            )

        assert exc_info.value.code == 1
