"""Rich-based output formatting utilities for LocalSpace CLI commands."""

import threading
from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from localspace.core.models import (
    DirectoryRecord,
    FileRecord,
    ScanProgress,
    ScanSummary,
    format_bytes,
)
from localspace.core.types import RiskLevel

RISK_STYLES = {
    RiskLevel.SAFE: "green",
    RiskLevel.REVIEW: "yellow",
    RiskLevel.HIGH_RISK: "red",
}


def _format_time(timestamp: float) -> str:
    if not timestamp:
        return "-"
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M")


def _risk_text(level: RiskLevel) -> str:
    return f"[{RISK_STYLES[level]}]{level.label}[/{RISK_STYLES[level]}]"


class RichOutputFormatter:
    """Terminal UI formatter using Rich library."""

    def __init__(self, verbose: bool = False, console: Console | None = None):
        """Initialize Rich output formatter.

        Args:
            verbose: Whether to enable verbose output
            console: Console to write to (defaults to stdout)
        """
        self.verbose = verbose
        self.console = console or Console()

    def info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[blue][INFO][/blue] {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green][SUCCESS][/green] {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow][WARN][/yellow] {message}")

    def error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red][ERROR][/red] {message}", style="red")

    def verbose_info(self, message: str) -> None:
        """Print a verbose info message if verbose mode is enabled."""
        if self.verbose:
            self.console.print(f"[cyan][DEBUG][/cyan] {message}")

    def startup_info(self, version: str, roots: list[str], database: str) -> None:
        """Display startup information in a styled panel."""
        info_table = Table.grid(padding=(0, 2))
        info_table.add_column(style="cyan")
        info_table.add_column()

        info_table.add_row("Version:", f"[green]{version}[/green]")
        for index, root in enumerate(roots):
            info_table.add_row("Roots:" if index == 0 else "", f"[blue]{root}[/blue]")
        info_table.add_row("Database:", f"[magenta]{database}[/magenta]")

        self.console.print(
            Panel(
                info_table,
                title="[bold cyan]LocalSpace Scan[/bold cyan]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def create_scan_progress(self) -> "ScanProgressDisplay":
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            TextColumn("{task.percentage:>5.1f}%"),
            TextColumn("•"),
            TimeElapsedColumn(),
            TextColumn("•"),
            TextColumn("{task.fields[speed]}", style="green"),
            TextColumn("{task.fields[info]}", style="dim"),
            console=self.console,
            expand=False,
            transient=False,
        )
        return ScanProgressDisplay(progress)

    def completion_summary(self, summary: ScanSummary) -> None:
        """Display completion summary in a styled panel."""
        summary_table = Table.grid(padding=(0, 2))
        summary_table.add_column(style="cyan")
        summary_table.add_column()

        summary_table.add_row("Files:", f"[green]{summary.files_indexed}[/green]")
        summary_table.add_row("Size:", f"[blue]{format_bytes(summary.bytes_indexed)}[/blue]")
        summary_table.add_row("Directories:", f"[magenta]{summary.directories_indexed}[/magenta]")
        summary_table.add_row("Time:", f"[cyan]{summary.elapsed_seconds:.2f}s[/cyan]")

        if summary.cancelled:
            title, style = "[bold yellow]Scan Cancelled[/bold yellow]", "yellow"
        else:
            title, style = "[bold green]Scan Complete[/bold green]", "green"
        self.console.print(Panel(summary_table, title=title, border_style=style, padding=(1, 2)))

    def files_table(self, files: list[FileRecord], title: str) -> None:
        table = Table(title=title)
        table.add_column("Size", justify="right", style="cyan")
        table.add_column("Modified")
        table.add_column("Risk")
        table.add_column("Type", style="dim")
        table.add_column("Path", overflow="fold")

        for record in files:
            table.add_row(
                record.formatted_size,
                _format_time(record.modified_time),
                _risk_text(record.risk_level),
                record.category,
                record.path,
            )
        self.console.print(table)

    def directories_table(self, directories: list[DirectoryRecord], title: str) -> None:
        table = Table(title=title)
        table.add_column("Size", justify="right", style="cyan")
        table.add_column("Files", justify="right")
        table.add_column("Risk")
        table.add_column("Main types", style="dim")
        table.add_column("Path", overflow="fold")

        for record in directories:
            table.add_row(
                record.formatted_size,
                str(record.file_count),
                _risk_text(record.risk_level),
                record.main_file_types,
                record.path,
            )
        self.console.print(table)

    def stats_panel(self, stats: dict[str, Any]) -> None:
        stats_table = Table.grid(padding=(0, 2))
        stats_table.add_column(style="cyan")
        stats_table.add_column()
        stats_table.add_row("Files:", str(stats.get("files", 0)))
        stats_table.add_row("Directories:", str(stats.get("directories", 0)))
        stats_table.add_row("Total size:", format_bytes(stats.get("total_size_bytes", 0)))
        self.console.print(
            Panel(stats_table, title="[bold cyan]Index Statistics[/bold cyan]", border_style="cyan")
        )

    def risk_panel(self, path: str, level: RiskLevel, explanation: str, category: str) -> None:
        risk_table = Table.grid(padding=(0, 2))
        risk_table.add_column(style="cyan")
        risk_table.add_column()
        risk_table.add_row("Path:", path)
        risk_table.add_row("Risk:", _risk_text(level))
        risk_table.add_row("Why:", explanation)
        risk_table.add_row("Category:", category)
        self.console.print(Panel(risk_table, border_style=RISK_STYLES[level]))


class ScanProgressDisplay:
    """Renders ScanProgress snapshots as a single Rich progress bar.

    ``update`` may be called from a worker thread.
    """

    def __init__(self, progress: Progress):
        self.progress = progress
        self._lock = threading.Lock()
        self._task: TaskID | None = None

    def __enter__(self) -> "ScanProgressDisplay":
        self.progress.start()
        self._task = self.progress.add_task("Scanning", total=100, speed="", info="")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.progress.stop()

    def update(self, snapshot: ScanProgress) -> None:
        if self._task is None:
            return
        with self._lock:
            self.progress.update(
                self._task,
                completed=snapshot.percent_complete,
                description=snapshot.phase.capitalize(),
                speed=f"{snapshot.files_per_second:,.0f} files/s",
                info=snapshot.error_message or f"{snapshot.files_scanned:,} files",
            )
