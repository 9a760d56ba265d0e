"""Tests for dump replay and procedure loading."""
import io

import pytest

from portal_backup.core.exceptions import DatabaseError
from portal_backup.services.replay import (
    DISABLE_FOREIGN_KEY_CHECKS,
    ENABLE_FOREIGN_KEY_CHECKS,
    DumpReplayer,
    ProcedureLoader,
    load_procedures,
    replay_dump,
)

from tests.conftest import FakeDatabase

def make_replayer(database, no_sleep, **kwargs):
    sleep, _ = no_sleep
    return DumpReplayer(database, retry_delay=0.5, sleep=sleep, **kwargs)

class TestDumpReplayer:
    """Transactional replay with repair and retry."""

    def test_empty_stream_commits_without_executing(self, database):
        result = replay_dump(io.StringIO(""), database)

        assert database.calls == ["BEGIN", "COMMIT"]
        assert result.statements_total == 0

    def test_absent_stream_commits_without_executing(self, database):
        result = replay_dump(None, database)

        assert database.calls == ["BEGIN", "COMMIT"]
        assert result.status == "success"

    def test_statements_run_in_one_transaction(self, database, no_sleep):
        stream = io.StringIO("INSERT INTO a VALUES (1);\nINSERT INTO b VALUES (2);\n")

        result = make_replayer(database, no_sleep).replay(stream, source="data.sql")

        assert database.calls == [
            "BEGIN",
            DISABLE_FOREIGN_KEY_CHECKS,
            "INSERT INTO a VALUES (1);",
            "INSERT INTO b VALUES (2);",
            "COMMIT",
            ENABLE_FOREIGN_KEY_CHECKS,
        ]
        assert result.statements_executed == 2
        assert result.source == "data.sql"

    def test_foreign_key_checks_restored_between_dumps(self, database, no_sleep):
        replayer = make_replayer(database, no_sleep)

        replayer.replay(io.StringIO("INSERT INTO a VALUES (1);\n"))
        replayer.replay(io.StringIO("INSERT INTO b VALUES (2);\n"))

        assert database.calls.count(DISABLE_FOREIGN_KEY_CHECKS) == 2
        assert database.calls.count(ENABLE_FOREIGN_KEY_CHECKS) == 2
        assert database.calls.index(ENABLE_FOREIGN_KEY_CHECKS) == database.calls.index("COMMIT") + 1

    def test_failed_statement_retried_once_after_delay(self, no_sleep):
        database = FakeDatabase(fail_times={"INSERT INTO a VALUES (1);": 1})
        _, delays = no_sleep

        result = make_replayer(database, no_sleep).replay(io.StringIO("INSERT INTO a VALUES (1);\n"))

        assert delays == [0.5]
        assert database.executed[-1] == "INSERT INTO a VALUES (1);"
        assert result.statements_retried == 1
        assert result.statements_failed == 0

    def test_statement_abandoned_after_second_failure(self, no_sleep):
        database = FakeDatabase(fail_times={"INSERT INTO a VALUES (1);": 2})
        stream = io.StringIO("INSERT INTO a VALUES (1);\nINSERT INTO b VALUES (2);\n")

        result = make_replayer(database, no_sleep).replay(stream)

        assert database.calls.count("INSERT INTO a VALUES (1);") == 2
        assert "INSERT INTO b VALUES (2);" in database.executed
        assert database.calls[-2:] == ["COMMIT", ENABLE_FOREIGN_KEY_CHECKS]
        assert result.statements_failed == 1
        assert result.statements_executed == 1
        assert result.status == "warning"

    def test_replace_statement_repaired(self, no_sleep):
        statement = "REPLACE INTO t VALUES ('a,b', 1);"
        database = FakeDatabase(fail_times={statement: 1})
        _, delays = no_sleep

        result = make_replayer(database, no_sleep).replay(io.StringIO(statement + "\n"))

        assert "REPLACE INTO t VALUES (CONVERT(0x612c62 USING utf8), 1);" in database.executed
        assert delays == []
        assert result.statements_repaired == 1

    def test_ignored_table_skipped(self, database, no_sleep):
        stream = io.StringIO("INSERT INTO audit VALUES (1);\nINSERT INTO users VALUES (2);\n")

        result = make_replayer(database, no_sleep, ignored_tables={"audit"}).replay(stream)

        assert "INSERT INTO audit VALUES (1);" not in database.calls
        assert result.statements_skipped == 1
        assert result.statements_executed == 1

    def test_commit_failure_rolls_back(self, no_sleep):
        database = FakeDatabase(fail_commit=True)

        with pytest.raises(DatabaseError):
            make_replayer(database, no_sleep).replay(io.StringIO("INSERT INTO a VALUES (1);\n"))

        assert database.calls[-2:] == ["ROLLBACK", ENABLE_FOREIGN_KEY_CHECKS]

    def test_progress_reported_below_hundred(self, database, no_sleep):
        text = "INSERT INTO a VALUES (1);\nINSERT INTO b VALUES (2);\n"
        reported = []

        make_replayer(database, no_sleep, progress_callback=reported.append).replay(
            io.StringIO(text), total_size=len(text)
        )

        assert reported == [50, 99]

    def test_whole_stream_as_one_statement(self, no_sleep):
        text = "CREATE TABLE t (id INT);\n"
        database = FakeDatabase(fail_times={text: 1})
        _, delays = no_sleep

        result = make_replayer(database, no_sleep).replay(io.StringIO(text), delimiter=None)

        assert delays == []
        assert result.statements_failed == 1

class TestProcedureLoader:
    """Procedure dumps with a DELIMITER header."""

    def test_no_header_executes_nothing(self, database):
        result = load_procedures(io.StringIO("CREATE PROCEDURE p() SELECT 1;\n"), database)

        assert database.calls == []
        assert result.statements_total == 0

    def test_absent_stream(self, database):
        assert ProcedureLoader(database).load_procedures(None).statements_total == 0

    def test_loads_procedures_with_custom_delimiter(self, database):
        stream = io.StringIO(
            "DELIMITER ;;\n"
            "CREATE PROCEDURE p()\n"
            "BEGIN\n"
            "SELECT 1;\n"
            "END;;\n"
            "DELIMITER ;;\n"
            "CREATE PROCEDURE q() SELECT 2;;\n"
        )

        result = load_procedures(stream, database)

        assert database.executed == [
            "CREATE PROCEDURE p()\nBEGIN\nSELECT 1;\nEND",
            "CREATE PROCEDURE q() SELECT 2",
        ]
        assert result.statements_skipped == 1
        assert "BEGIN" not in database.calls

    def test_failures_counted_not_raised(self):
        database = FakeDatabase(fail_times={"CREATE PROCEDURE p() SELECT 1": 1})

        result = load_procedures(io.BytesIO(b"DELIMITER $$\nCREATE PROCEDURE p() SELECT 1$$\n"), database)

        assert result.statements_failed == 1
        assert result.status == "error"
