"""Tests for the dump statement reader."""
import io

from portal_backup.services.dump_reader import (
    DumpStatementReader,
    get_statement_table,
    parse_delimiter,
    read_statements,
    restore_line_breaks,
)

class TestReadStatements:
    """Splitting a dump into statements."""

    def test_splits_on_delimiter(self):
        stream = io.StringIO(
            "INSERT INTO a VALUES (1);\n"
            "INSERT INTO b\n"
            "VALUES (2);\n"
        )

        assert list(read_statements(stream)) == [
            "INSERT INTO a VALUES (1);",
            "INSERT INTO b\nVALUES (2);",
        ]

    def test_continuation_lines_joined_with_newline(self):
        stream = io.StringIO("CREATE TABLE t (\n  id INT\n);\n")

        assert list(read_statements(stream)) == ["CREATE TABLE t (\n  id INT\n);"]

    def test_restores_escaped_line_breaks(self):
        stream = io.StringIO("INSERT INTO t VALUES ('a\\r\\nb');\n")

        assert list(read_statements(stream)) == ["INSERT INTO t VALUES ('a\r\nb');"]

    def test_unterminated_trailing_statement_dropped(self):
        stream = io.StringIO("INSERT INTO a VALUES (1);\nINSERT INTO b VALUES (2)\n")

        assert list(read_statements(stream)) == ["INSERT INTO a VALUES (1);"]

    def test_blank_lines_do_not_start_statement(self):
        stream = io.StringIO("\n\nREPLACE INTO a VALUES (1);\n\n")

        assert list(read_statements(stream)) == ["REPLACE INTO a VALUES (1);"]

    def test_custom_delimiter(self):
        stream = io.StringIO("CREATE PROCEDURE p()\nBEGIN\nSELECT 1;\nEND;;\n")

        assert list(read_statements(stream, ";;")) == ["CREATE PROCEDURE p()\nBEGIN\nSELECT 1;\nEND;;"]

    def test_none_delimiter_reads_whole_stream(self):
        text = "SELECT 1;\nSELECT 2;\n"

        assert list(read_statements(io.StringIO(text), None)) == [text]

    def test_empty_stream(self):
        assert list(read_statements(io.StringIO(""))) == []

    def test_binary_stream_decoded_as_utf8(self):
        stream = io.BytesIO("INSERT INTO t VALUES ('ü');\n".encode("utf-8"))

        assert list(read_statements(stream)) == ["INSERT INTO t VALUES ('ü');"]
        assert not stream.closed

class TestReader:
    """Reader state."""

    def test_counts_lines_and_chars(self):
        text = "SELECT 1;\nSELECT 2;\n"
        reader = DumpStatementReader(io.StringIO(text))

        list(reader)

        assert reader.lines_read == 2
        assert reader.chars_read == len(text)

    def test_header_line_then_statements(self):
        stream = io.BytesIO(b"DELIMITER ;;\nSELECT 1;;\n")
        reader = DumpStatementReader(stream)

        assert parse_delimiter(reader.read_line()) == ";;"
        reader.delimiter = ";;"
        assert list(reader) == ["SELECT 1;;"]
        reader.release()

class TestHelpers:
    """Module-level helpers."""

    def test_restore_line_breaks(self):
        assert restore_line_breaks("a\\nb\\rc") == "a\nb\rc"

    def test_parse_delimiter(self):
        assert parse_delimiter("DELIMITER $$") == "$$"
        assert parse_delimiter("SELECT 1;") is None
        assert parse_delimiter(None) is None

    def test_statement_table(self):
        assert get_statement_table("INSERT INTO `users` VALUES (1);") == "users"
        assert get_statement_table("REPLACE INTO users (id) VALUES (1);") == "users"
        assert get_statement_table("DROP TABLE IF EXISTS `users`;") == "users"
        assert get_statement_table("SET NAMES utf8;") is None
