"""Custom exceptions for the portal backup engine."""

class BackupError(Exception):
    """Base class for every error raised by the engine."""
    pass

class ConfigError(BackupError):
    """Configuration error."""
    # Raised when the YAML configuration is missing or cannot be read
    pass

class InvalidConfigurationError(BackupError):
    """A task was configured with impossible values (e.g. zero steps)."""
    pass

class InvalidArgumentError(BackupError, ValueError):
    """A caller passed an out-of-range argument."""
    # e.g. progress value outside 0..100 or a non-positive tenant id
    pass

class IllegalStateError(BackupError):
    """Operation is not allowed in the current task state."""
    # e.g. completing a step when all steps are done
    pass

class StorageUnavailableError(BackupError):
    """Storage scope of a module could not be opened or listed."""

    def __init__(self, module: str, message: str):
        super().__init__(f"Storage for module '{module}' is unavailable: {message}")
        self.module = module

class DatabaseError(BackupError):
    """Database operation error."""
    # Wraps mysql.connector errors with contextual information
    pass

class StatementExecutionError(DatabaseError):
    """A dump statement failed even after its single retry."""

    def __init__(self, statement: str, cause: Exception):
        super().__init__(f"Statement failed: {cause}")
        self.statement = statement
        self.cause = cause

class StreamMalformedError(BackupError):
    """Procedure dump does not start with a DELIMITER directive."""
    pass
