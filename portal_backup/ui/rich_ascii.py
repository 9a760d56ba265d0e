"""Rich ASCII interface implementation using the Rich library."""
import threading
from typing import Dict, List

from rich import box
from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from ..core.logging import get_logger
from ..domain.models import BackupManifest, ReplayResult

logger = get_logger(__name__)

class RichASCIIInterface:
    """Rich progress bars, one per task label, and result tables."""

    def __init__(self, console: Console = None, **kwargs):
        self.logger = logger
        self.console = console or Console()
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            BarColumn(complete_style="green", finished_style="bright_green"),
            TaskProgressColumn(),
            TextColumn("•"),
            TimeElapsedColumn(),
            console=self.console
        )
        self._tasks: Dict[str, TaskID] = {}
        self._lock = threading.Lock()
        self._started = False

    def display_progress(self, percent: int, label: str = "") -> None:
        """Advance the bar of ``label``; usable directly as a progress callback."""
        with self._lock:
            if not self._started:
                self.progress.start()
                self._started = True
            task_id = self._tasks.get(label)
            if task_id is None:
                task_id = self.progress.add_task(f"[green]{label or 'Processing'}", total=100)
                self._tasks[label] = task_id
        self.progress.update(task_id, completed=percent)

    def _finish_progress(self) -> None:
        with self._lock:
            if self._started:
                self.progress.stop()
                self._started = False
            for task_id in self._tasks.values():
                self.progress.remove_task(task_id)
            self._tasks = {}

    def display_backup_result(self, manifest: BackupManifest) -> None:
        """Display the result of a backup."""
        self._finish_progress()

        table = Table(title=f"Backup Result: tenant {manifest.tenant_id}", box=box.ROUNDED)
        table.add_column("Attribute", style="cyan")
        table.add_column("Value", style="yellow")

        table.add_row("Status", "[green]Success" if not manifest.errors else f"[red]{len(manifest.errors)} module errors")
        table.add_row("Files", str(len(manifest.files)))
        if manifest.output_path:
            table.add_row("Manifest", manifest.output_path)
        table.add_row("Duration", self._format_time(manifest.duration))
        for error in manifest.errors:
            table.add_row(f"[red]{error.module}", error.message)

        self.console.print(table)
        self.logger.info(
            f"Backup of tenant {manifest.tenant_id}: {len(manifest.files)} files, "
            f"{len(manifest.errors)} module errors, {self._format_time(manifest.duration)}"
        )

    def display_restore_result(self, results: List[ReplayResult]) -> None:
        """Display a table of restored files."""
        self._finish_progress()

        styles = {"success": "green", "warning": "yellow", "error": "red"}
        table = Table(title="Restore Result", box=box.ROUNDED)
        table.add_column("File", style="blue")
        table.add_column("Status", style="cyan")
        table.add_column("Executed", style="magenta")
        table.add_column("Repaired", style="magenta")
        table.add_column("Skipped", style="magenta")
        table.add_column("Failed", style="red")
        table.add_column("Duration", style="green")

        for result in results:
            style = styles.get(result.status, "white")
            table.add_row(
                result.source,
                f"[{style}]{result.status}",
                f"{result.statements_executed}/{result.statements_total}",
                str(result.statements_repaired),
                str(result.statements_skipped),
                str(result.statements_failed),
                self._format_time(result.duration)
            )

        self.console.print(table)
        self.logger.info(
            f"Restore Summary: {len(results)} files, "
            f"{sum(r.statements_failed for r in results)} failed statements"
        )

    def _format_time(self, seconds: float) -> str:
        """Format time in seconds to a human-readable string."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        elif seconds < 3600:
            minutes = seconds / 60
            return f"{minutes:.1f}m"
        else:
            hours = seconds / 3600
            return f"{hours:.1f}h"
