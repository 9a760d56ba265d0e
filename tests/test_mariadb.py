"""Tests for connection strings, the database registry and the MariaDB wrapper."""
from unittest.mock import MagicMock, patch

import pytest
from mysql.connector import Error

from portal_backup.core.config import DatabaseConfig
from portal_backup.core.exceptions import DatabaseError
from portal_backup.infrastructure.mariadb import (
    DatabaseRegistry,
    MariaDB,
    config_from_connection_string,
    parse_connection_string,
)

class TestConnectionString:
    """Parsing ``key=value;`` strings."""

    def test_keys_lower_cased(self):
        parsed = parse_connection_string("Server=db;Database=mail;User ID=root;Password=a=b;")

        assert parsed == {"server": "db", "database": "mail", "user id": "root", "password": "a=b"}

    def test_config_from_connection_string(self):
        config = config_from_connection_string("Server=db;Port=3307;Database=mail;UID=svc;PWD=x")

        assert config.host == "db"
        assert config.port == 3307
        assert config.database == "mail"
        assert config.user == "svc"
        assert config.password == "x"

    def test_invalid_port(self):
        with pytest.raises(DatabaseError):
            config_from_connection_string("Server=db;Port=abc")

class TestDatabaseRegistry:
    """Named registrations."""

    def test_register_and_replace(self):
        registry = DatabaseRegistry()

        name = registry.register_database(4, "Server=first")
        registry.register_database(4, "Server=second")

        assert name == "mailservice-4"
        assert registry.is_registered(name)
        assert registry.get(name).host == "second"

    def test_unregister(self):
        registry = DatabaseRegistry()
        name = registry.register_database(1, "Server=db")

        registry.unregister(name)

        assert not registry.is_registered(name)
        with pytest.raises(DatabaseError):
            registry.get(name)

class TestMariaDB:
    """mysql.connector wrapping."""

    @pytest.fixture
    def connection(self):
        with patch("portal_backup.infrastructure.mariadb.mysql.connector.connect") as connect:
            connection = MagicMock()
            connection.is_connected.return_value = True
            connect.return_value = connection
            yield connection

    def test_execute_wraps_errors(self, connection):
        cursor = connection.cursor.return_value
        cursor.execute.side_effect = Error("syntax error")
        db = MariaDB(DatabaseConfig())

        with pytest.raises(DatabaseError, match="syntax error"):
            db.execute("SELEC 1")

    def test_transaction_calls(self, connection):
        cursor = connection.cursor.return_value
        cursor.with_rows = False
        cursor.rowcount = 1

        with MariaDB(DatabaseConfig(database="portal")) as db:
            db.begin_transaction()
            assert db.execute("INSERT INTO t VALUES (1)") == 1
            db.commit()

        connection.start_transaction.assert_called_once()
        connection.commit.assert_called_once()
        connection.close.assert_called_once()

    def test_config_without_ssl(self):
        db = MariaDB(DatabaseConfig(host="db", database="portal"))

        assert db.config["host"] == "db"
        assert db.config["database"] == "portal"
        assert db.config["ssl_disabled"] is True
