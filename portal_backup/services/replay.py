"""Replay of SQL dumps and stored-procedure dumps into a database."""
import time
from typing import Callable, Iterable, Optional

from portal_backup.core.exceptions import DatabaseError, StatementExecutionError, StreamMalformedError
from portal_backup.core.logging import get_logger
from portal_backup.domain.interfaces import DatabaseInterface
from portal_backup.domain.models import ReplayResult
from portal_backup.services.dump_reader import (
    DEFAULT_DELIMITER,
    DumpStatementReader,
    Stream,
    get_statement_table,
    parse_delimiter,
)
from portal_backup.services.repair import is_repairable, repair_statement

logger = get_logger(__name__)

# Pause before re-running a failed statement; mitigates lock contention
DEFAULT_RETRY_DELAY = 1.0

DISABLE_FOREIGN_KEY_CHECKS = "SET FOREIGN_KEY_CHECKS=0;"
ENABLE_FOREIGN_KEY_CHECKS = "SET FOREIGN_KEY_CHECKS=1;"

def _record_failure(result: ReplayResult, statement: str, error: Exception) -> None:
    failure = StatementExecutionError(statement, error)
    result.statements_failed += 1
    result.errors.append(str(error))
    logger.error(f"Restore: {failure}")
    logger.debug(f"Failed statement: {statement[:100]}...")

class DumpReplayer:
    """Replays a dump inside one transaction, repairing what it can.

    A failing statement never aborts the replay: ``REPLACE INTO``
    statements are repaired and re-run once, anything else is re-run once
    after ``retry_delay`` seconds. The transaction is committed once, after
    every statement has been attempted.
    """

    def __init__(
        self,
        database: DatabaseInterface,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        ignored_tables: Optional[Iterable[str]] = None,
        progress_callback: Optional[Callable[[int], None]] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize the replayer.

        Args:
            database: Database the statements run against
            retry_delay: Seconds to wait before re-running a failed statement
            ignored_tables: Tables whose statements are skipped
            progress_callback: Receives the percentage of the stream consumed
                (requires ``total_size`` in replay)
            sleep: Delay function, replaceable in tests
        """
        self.database = database
        self.retry_delay = retry_delay
        self.ignored_tables = set(ignored_tables or ())
        self.progress_callback = progress_callback
        self._sleep = sleep

    def replay(
        self,
        stream: Optional[Stream],
        delimiter: Optional[str] = DEFAULT_DELIMITER,
        source: str = "",
        total_size: Optional[int] = None
    ) -> ReplayResult:
        """Execute every statement of a dump stream.

        Args:
            stream: Text or binary dump stream; None means nothing to replay
            delimiter: Statement delimiter, None to run the stream as one statement
            source: Name used in logs and in the result
            total_size: Size of the stream, enables the progress callback

        Returns:
            Counters of executed, repaired, retried, skipped and failed statements

        Raises:
            DatabaseError: If the transaction cannot be opened or committed
        """
        result = ReplayResult(source=source)
        start_time = time.time()

        foreign_keys_disabled = False
        self.database.begin_transaction()
        try:
            if stream is not None:
                reader = DumpStatementReader(stream, delimiter)
                try:
                    for statement in reader:
                        # Session setting, issued once the dump turns out to be non-empty
                        if not foreign_keys_disabled:
                            self.database.execute(DISABLE_FOREIGN_KEY_CHECKS)
                            foreign_keys_disabled = True
                        self._run_statement(statement, result, retry=delimiter is not None)
                        self._report_progress(reader, total_size)
                finally:
                    reader.release()

            self.database.commit()
        except DatabaseError:
            logger.error(f"Restore of {source or 'dump'} failed, rolling back")
            self.database.rollback()
            raise
        finally:
            # FK checks are a session setting, not scoped to the transaction
            if foreign_keys_disabled:
                self.database.execute(ENABLE_FOREIGN_KEY_CHECKS)

        result.duration = time.time() - start_time
        logger.info(
            f"Replayed {source or 'dump'}: {result.statements_executed}/{result.statements_total} statements, "
            f"{result.statements_repaired} repaired, {result.statements_retried} retried, "
            f"{result.statements_skipped} skipped, {result.statements_failed} failed"
        )
        return result

    def _run_statement(self, statement: str, result: ReplayResult, retry: bool = True) -> None:
        if self.ignored_tables:
            table = get_statement_table(statement)
            if table in self.ignored_tables:
                result.statements_skipped += 1
                logger.debug(f"Skipping statement for ignored table {table}")
                return

        result.statements_total += 1
        try:
            self.database.execute(statement)
            result.statements_executed += 1
            return
        except DatabaseError as e:
            if not retry:
                _record_failure(result, statement, e)
                return
            logger.debug(f"Statement failed, retrying once: {str(e)}")

        try:
            if is_repairable(statement):
                self.database.execute(repair_statement(statement))
                result.statements_repaired += 1
            else:
                self._sleep(self.retry_delay)
                self.database.execute(statement)
                result.statements_retried += 1
            result.statements_executed += 1
        except DatabaseError as e:
            _record_failure(result, statement, e)

    def _report_progress(self, reader: DumpStatementReader, total_size: Optional[int]) -> None:
        if not self.progress_callback or not total_size:
            return
        # 100 is reserved for the caller completing the step
        self.progress_callback(min(99, reader.chars_read * 100 // total_size))

class ProcedureLoader:
    """Loads a stored-procedure dump that declares its own delimiter.

    The first line must be ``DELIMITER <token>``; otherwise there is
    nothing to load. Statements run without a transaction, and later
    ``DELIMITER`` lines are ignored.
    """

    def __init__(self, database: DatabaseInterface):
        self.database = database

    def load_procedures(self, stream: Optional[Stream], source: str = "") -> ReplayResult:
        """Execute the procedure definitions of a stream.

        Args:
            stream: Text or binary procedure dump; None means nothing to load
            source: Name used in logs and in the result

        Returns:
            Counters of executed, skipped and failed statements
        """
        result = ReplayResult(source=source)
        if stream is None:
            return result

        start_time = time.time()
        reader = DumpStatementReader(stream)
        try:
            delimiter = parse_delimiter(reader.read_line())
            if delimiter is None:
                logger.debug(str(StreamMalformedError(f"{source or 'Procedure dump'} has no DELIMITER header")))
                return result

            reader.delimiter = delimiter
            for statement in reader:
                statement = statement.replace(delimiter, "").strip()
                if statement.startswith("DELIMITER"):
                    result.statements_skipped += 1
                    continue

                result.statements_total += 1
                try:
                    self.database.execute(statement)
                    result.statements_executed += 1
                except DatabaseError as e:
                    _record_failure(result, statement, e)
        finally:
            reader.release()

        result.duration = time.time() - start_time
        logger.info(
            f"Loaded procedures from {source or 'dump'}: "
            f"{result.statements_executed}/{result.statements_total} statements"
        )
        return result

def replay_dump(
    stream: Optional[Stream],
    database: DatabaseInterface,
    delimiter: Optional[str] = DEFAULT_DELIMITER,
    **kwargs
) -> ReplayResult:
    """Replay a dump with a default-configured DumpReplayer."""
    return DumpReplayer(database, **kwargs).replay(stream, delimiter)

def load_procedures(stream: Optional[Stream], database: DatabaseInterface) -> ReplayResult:
    """Load a procedure dump with a ProcedureLoader."""
    return ProcedureLoader(database).load_procedures(stream)
