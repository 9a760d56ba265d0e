"""Streaming reader turning a SQL dump into logical statements."""
import io
import re
from typing import IO, Iterator, Optional, Union

import sqlparse
from sqlparse import tokens as T
from sqlparse.sql import Function, Identifier

from portal_backup.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DELIMITER = ";"

# Header line of a procedure dump
DELIMITER_PATTERN = re.compile(r"DELIMITER (\S+)")

# Keywords directly followed by the table a statement writes to
_TABLE_KEYWORDS = ("INTO", "TABLE", "UPDATE")

# Only the head of a statement is tokenized when looking for its table
_TABLE_LOOKUP_HEAD = 256

Stream = Union[IO[str], IO[bytes]]

def restore_line_breaks(text: str) -> str:
    """Turn the escaped ``\\r`` and ``\\n`` pairs of a dump into real CR/LF."""
    return text.replace("\\r", "\r").replace("\\n", "\n")

def parse_delimiter(line: Optional[str]) -> Optional[str]:
    """Return the token of a ``DELIMITER <token>`` line, or None."""
    if not line:
        return None
    match = DELIMITER_PATTERN.search(line)
    return match.group(1) if match else None

def get_statement_table(statement: str) -> Optional[str]:
    """Find the table a statement inserts into, creates, drops or updates.

    Args:
        statement: SQL statement text

    Returns:
        Unquoted table name, or None when the statement has no target table
    """
    parsed = sqlparse.parse(statement[:_TABLE_LOOKUP_HEAD])
    if not parsed:
        return None

    expect_table = False
    for token in parsed[0].tokens:
        if token.is_whitespace or token.ttype in T.Comment:
            continue
        if token.ttype in T.Keyword:
            if token.normalized in _TABLE_KEYWORDS:
                expect_table = True
            continue
        if expect_table:
            if isinstance(token, (Identifier, Function)):
                return token.get_real_name()
            if token.ttype in T.Name:
                return token.value.strip("`\"")
            return None
    return None

class DumpStatementReader:
    """Yields the statements of a dump stream.

    Lines are accumulated until the text ends with the delimiter. A trailing
    statement without delimiter is dropped at end of stream. With
    ``delimiter=None`` the rest of the stream is a single statement.

    Every iteration reads from the current stream position; it does not
    resume an earlier, partially consumed iteration. Binary streams are
    decoded as UTF-8 through one wrapper kept for the reader's lifetime;
    call ``release()`` to hand the underlying stream back to its owner.
    """

    def __init__(self, stream: Stream, delimiter: Optional[str] = DEFAULT_DELIMITER):
        self.stream = stream
        self.delimiter = delimiter
        self.chars_read = 0
        self.lines_read = 0
        self._text, self._wrapped = _as_text(stream)

    def __iter__(self) -> Iterator[str]:
        return self.read_statements()

    def read_statements(self) -> Iterator[str]:
        if self.delimiter is None:
            content = self._text.read()
            self.chars_read += len(content)
            if content.strip():
                yield content
            return

        while True:
            line = self.read_line()
            if line is None:
                return

            statement = line
            while not statement.endswith(self.delimiter):
                next_line = self.read_line()
                if next_line is None:
                    break
                # Blank lines between statements do not start a statement
                statement = statement + "\n" + next_line if statement.strip() else next_line
            else:
                yield restore_line_breaks(statement)
                continue

            # End of stream inside a statement
            if statement.strip():
                logger.debug(f"Dropping unterminated statement at end of dump: {statement[:100]}")
            return

    def read_line(self) -> Optional[str]:
        """Read one line without its terminator; None at end of stream."""
        line = self._text.readline()
        if not line:
            return None
        self.chars_read += len(line)
        self.lines_read += 1
        if line.endswith("\n"):
            line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]
        return line

    def release(self) -> None:
        """Detach the UTF-8 wrapper so the caller's stream stays open."""
        if self._wrapped and self._text is not None:
            self._text.detach()
            self._text = None

def read_statements(stream: Stream, delimiter: Optional[str] = DEFAULT_DELIMITER) -> Iterator[str]:
    """Iterate the statements of a stream with a throw-away reader."""
    reader = DumpStatementReader(stream, delimiter)
    try:
        yield from reader
    finally:
        reader.release()

def _as_text(stream: Stream):
    """Return a text view of the stream and whether it had to be wrapped."""
    if isinstance(stream, io.TextIOBase):
        return stream, False
    return io.TextIOWrapper(stream, encoding="utf-8", errors="replace"), True
