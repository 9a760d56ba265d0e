"""ASCII interface implementation."""
import sys
import threading
from typing import List

from ..core.logging import get_logger
from ..domain.models import BackupManifest, ReplayResult

logger = get_logger(__name__)

class ASCIIInterface:
    """Plain text progress bar and result lines."""

    def __init__(self, quiet=False, logger=None):
        """Initialize the interface."""
        self.quiet = quiet
        self.logger = logger or get_logger(__name__)
        self._lock = threading.Lock()
        self._last_logged = {}

    def display_progress(self, percent: int, label: str = "") -> None:
        """Draw a progress bar; usable directly as a progress callback."""
        bar_length = 50
        filled_length = bar_length * percent // 100
        bar = '=' * filled_length + '-' * (bar_length - filled_length)
        prefix = f"{label} " if label else ""

        with self._lock:
            # Log every 10%
            decile = percent // 10
            if self._last_logged.get(label) != decile:
                self._last_logged[label] = decile
                self.logger.info(f"{prefix}Progress: {percent}%")

            if self.quiet:
                return
            sys.stdout.write('\r' + ' ' * 80 + '\r')
            sys.stdout.write(f"{prefix}Progress: [{bar}] {percent}%")
            if percent == 100:
                sys.stdout.write('\n')
            sys.stdout.flush()

    def display_backup_result(self, manifest: BackupManifest) -> None:
        """Display the files and module errors of a backup."""
        output = (
            f"Tenant {manifest.tenant_id}: {len(manifest.files)} files "
            f"in {self._format_time(manifest.duration)}"
        )
        if manifest.output_path:
            output += f", manifest: {manifest.output_path}"

        if manifest.errors:
            self.logger.warning(output)
            for error in manifest.errors:
                self.logger.warning(f"  ✗ {error.module}: {error.message}")
        else:
            self.logger.info(output)

    def display_restore_result(self, results: List[ReplayResult]) -> None:
        """Display one line per restored file followed by a summary."""
        symbols = {
            "success": "✓",
            "warning": "⚠",
            "error": "✗"
        }

        for result in results:
            output = (
                f"{symbols.get(result.status, '?')} {result.source}: "
                f"{result.statements_executed}/{result.statements_total} statements"
            )
            if result.statements_repaired:
                output += f", {result.statements_repaired} repaired"
            if result.statements_skipped:
                output += f", {result.statements_skipped} skipped"
            if result.duration > 0:
                output += f" in {self._format_time(result.duration)}"

            if result.status == "error":
                self.logger.error(output)
            elif result.status == "warning":
                self.logger.warning(output)
            else:
                self.logger.info(output)

        failed = sum(r.statements_failed for r in results)
        self.logger.info(
            f"\n===== Restore Summary =====\n"
            f"Files: {len(results)}\n"
            f"Statements executed: {sum(r.statements_executed for r in results)}\n"
            f"Statements failed: {failed}\n"
            f"Total duration: {self._format_time(sum(r.duration for r in results))}"
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
