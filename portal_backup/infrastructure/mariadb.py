"""MariaDB/MySQL implementation of the database collaborator."""
import threading
import time
from typing import Any, Dict, Optional

import mysql.connector
from mysql.connector import Error

from portal_backup.core.config import DatabaseConfig
from portal_backup.core.exceptions import DatabaseError
from portal_backup.core.logging import get_logger
from portal_backup.domain.interfaces import DatabaseInterface

logger = get_logger(__name__)

# Connection string keys accepted for each DatabaseConfig field
_CONNECTION_STRING_KEYS = {
    'host': ('server', 'host', 'data source', 'datasource'),
    'port': ('port',),
    'database': ('database', 'initial catalog'),
    'user': ('user id', 'uid', 'user', 'username'),
    'password': ('password', 'pwd'),
}

def parse_connection_string(connection_string: str) -> Dict[str, str]:
    """Parse a ``key=value;key=value`` connection string.

    Keys are lower-cased, empty segments are ignored.

    Args:
        connection_string: Connection string to parse

    Returns:
        Dict of lower-cased keys to raw values
    """
    result = {}
    for part in connection_string.split(';'):
        if not part.strip():
            continue
        key, _, value = part.partition('=')
        result[key.strip().lower()] = value.strip()
    return result

def config_from_connection_string(connection_string: str) -> DatabaseConfig:
    """Build a DatabaseConfig from a connection string."""
    parsed = parse_connection_string(connection_string)
    values: Dict[str, Any] = {}
    for field_name, keys in _CONNECTION_STRING_KEYS.items():
        for key in keys:
            if key in parsed:
                values[field_name] = parsed[key]
                break
    if 'port' in values:
        try:
            values['port'] = int(values['port'])
        except ValueError:
            raise DatabaseError(f"Invalid port in connection string: {values['port']}")
    return DatabaseConfig(**values)

class DatabaseRegistry:
    """Named database configurations registered before a task runs."""

    def __init__(self):
        self._databases: Dict[str, DatabaseConfig] = {}
        self._lock = threading.Lock()

    def register_database(self, database_id: int, connection_string: str) -> str:
        """Register (or replace) the database of a mail server.

        Args:
            database_id: Id the registration name is derived from
            connection_string: ``key=value;...`` connection string

        Returns:
            The registration name
        """
        name = f"mailservice-{database_id}"
        config = config_from_connection_string(connection_string)
        with self._lock:
            if name in self._databases:
                logger.debug(f"Replacing database registration {name}")
            self._databases[name] = config
        return name

    def is_registered(self, name: str) -> bool:
        with self._lock:
            return name in self._databases

    def unregister(self, name: str) -> None:
        with self._lock:
            self._databases.pop(name, None)

    def get(self, name: str) -> DatabaseConfig:
        with self._lock:
            if name not in self._databases:
                raise DatabaseError(f"Database '{name}' is not registered")
            return self._databases[name]

class MariaDB(DatabaseInterface):
    """MariaDB connection used to replay dumps."""

    def __init__(self, config: DatabaseConfig, max_retries: int = 3, retry_backoff_factor: float = 1.5):
        """Initialize the MariaDB connection settings.

        Args:
            config: Database configuration
            max_retries: Connection attempts after the first one fails
            retry_backoff_factor: Multiplier of the wait between attempts
        """
        self._config: Dict[str, Any] = {
            'host': config.host,
            'port': config.port,
            'user': config.user,
            'password': config.password,
            'use_pure': config.use_pure,
        }
        if config.database:
            self._config['database'] = config.database
        if config.auth_plugin:
            self._config['auth_plugin'] = config.auth_plugin

        if config.ssl:
            if config.ssl_ca:
                self._config['ssl_ca'] = config.ssl_ca
            if config.ssl_cert:
                self._config['ssl_cert'] = config.ssl_cert
            if config.ssl_key:
                self._config['ssl_key'] = config.ssl_key
        else:
            self._config['ssl_disabled'] = True

        self.max_retries = max_retries
        self.retry_backoff_factor = retry_backoff_factor
        self._connection = None
        self._cursor = None

    @property
    def config(self) -> Dict[str, Any]:
        return self._config

    def connect(self) -> None:
        """Connect to the server with retry logic.

        Raises:
            DatabaseError: If connection fails after all retries
        """
        if self._connection and self._connection.is_connected():
            return

        logger.info(f"Connecting to MariaDB server at {self._config.get('host')}:{self._config.get('port')}")

        retry_count = 0
        last_error = None

        while retry_count <= self.max_retries:
            try:
                self._connection = mysql.connector.connect(**self._config)
                self._connection.autocommit = True
                self._cursor = self._connection.cursor()
                return
            except Error as e:
                retry_count += 1
                last_error = str(e)

                if retry_count <= self.max_retries:
                    wait_time = self.retry_backoff_factor ** (retry_count - 1)
                    logger.warning(
                        f"Connection attempt {retry_count} failed: {str(e)}. "
                        f"Retrying in {wait_time:.1f} seconds..."
                    )
                    time.sleep(wait_time)
                else:
                    logger.error(f"Failed to connect to MariaDB after {self.max_retries} attempts: {str(e)}")

        raise DatabaseError(f"Failed to connect to MariaDB: {last_error}")

    def disconnect(self) -> None:
        """Disconnect from the database."""
        try:
            if self._cursor:
                self._cursor.close()
            if self._connection and self._connection.is_connected():
                self._connection.close()
                logger.info("Disconnected from MariaDB database")
        except Error as e:
            logger.warning(f"Error during disconnect: {str(e)}")
        finally:
            self._connection = None
            self._cursor = None

    def _ensure_connected(self) -> None:
        if not self._connection or not self._connection.is_connected():
            self.connect()

    def begin_transaction(self) -> None:
        self._ensure_connected()
        try:
            self._connection.start_transaction()
        except Error as e:
            raise DatabaseError(f"Failed to start transaction: {str(e)}")

    def execute(self, sql: str, params: Optional[tuple] = None) -> int:
        """Execute a SQL statement and return the number of affected rows.

        Raises:
            DatabaseError: If execution fails
        """
        self._ensure_connected()

        try:
            self._cursor.execute(sql, params)
            # Drain result sets so the next statement can run
            if self._cursor.with_rows:
                self._cursor.fetchall()
            return self._cursor.rowcount
        except Error as e:
            logger.debug(f"Error executing SQL: {str(e)}")
            raise DatabaseError(f"Error executing SQL: {str(e)}")

    def commit(self) -> None:
        try:
            self._connection.commit()
        except Error as e:
            raise DatabaseError(f"Failed to commit transaction: {str(e)}")

    def rollback(self) -> None:
        try:
            self._connection.rollback()
        except Error as e:
            raise DatabaseError(f"Failed to roll back transaction: {str(e)}")

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
