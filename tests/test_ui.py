"""Tests for the progress displays."""
import io

from rich.console import Console

from portal_backup.domain.models import BackupManifest, ModuleError, ReplayResult
from portal_backup.ui.ascii import ASCIIInterface
from portal_backup.ui.factory import create_interface
from portal_backup.ui.rich_ascii import RichASCIIInterface

class TestFactory:
    """Interface selection."""

    def test_create_interface(self):
        assert isinstance(create_interface("ascii"), ASCIIInterface)
        assert isinstance(create_interface("rich_ascii", console=Console(file=io.StringIO())), RichASCIIInterface)

class TestASCIIInterface:
    """Plain text output."""

    def test_progress_bar(self, capsys):
        ui = ASCIIInterface()

        ui.display_progress(50, "tenant 1")
        ui.display_progress(100, "tenant 1")

        out = capsys.readouterr().out
        assert "tenant 1 Progress: [" + "=" * 25 + "-" * 25 + "] 50%" in out
        assert "] 100%\n" in out

    def test_results_logged(self, caplog):
        ui = ASCIIInterface(quiet=True)

        with caplog.at_level("INFO"):
            ui.display_backup_result(BackupManifest(tenant_id=1, errors=[ModuleError("crm", "offline")]))
            ui.display_restore_result([ReplayResult(source="a.sql", statements_total=2, statements_executed=2)])

        assert "crm: offline" in caplog.text
        assert "a.sql: 2/2 statements" in caplog.text

class TestRichASCIIInterface:
    """Rich output."""

    def test_progress_and_results(self):
        buffer = io.StringIO()
        ui = RichASCIIInterface(console=Console(file=buffer, width=120))

        ui.display_progress(30, "tenant 2")
        ui.display_progress(100, "tenant 2")
        ui.display_restore_result([ReplayResult(source="dump.sql", statements_total=1, statements_executed=1)])

        assert "dump.sql" in buffer.getvalue()
        assert ui.progress.tasks == []
