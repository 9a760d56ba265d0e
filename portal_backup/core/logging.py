"""Global logging configuration for the application."""
import logging
import sys
from pathlib import Path
from dataclasses import dataclass

@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"      # Logging level (DEBUG, INFO, etc.)
    file: str = ""           # Path to log file (optional)
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

def setup_logging(config: LoggingConfig) -> None:
    """Set up global logging configuration.

    Args:
        config: Logging configuration
    """
    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s\n'
        '  Location: %(pathname)s:%(lineno)d\n'
        '  Function: %(funcName)s\n'
        '  Thread: %(threadName)s'
    )
    simple_formatter = logging.Formatter(config.format)

    handlers = []

    # Console output keeps the short, user-facing format
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(simple_formatter)
    handlers.append(console_handler)

    if config.file:
        log_file = Path(config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(detailed_formatter)
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(config.level)

    # Remove any existing handlers to avoid duplicate log entries
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    root_logger.info("Logging system initialized")
    root_logger.info(f"Log level: {config.level}")
    if config.file:
        root_logger.info(f"Log file: {config.file}")

    sys.excepthook = _global_exception_handler

def _global_exception_handler(exc_type, exc_value, exc_traceback):
    """Global exception handler to ensure all unhandled exceptions are logged."""
    if not issubclass(exc_type, KeyboardInterrupt):
        logger = get_logger("exception_handler")
        logger.error(
            "Unhandled exception",
            exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.__excepthook__(exc_type, exc_value, exc_traceback)

def get_logger(name: str = None) -> logging.Logger:
    """Get a logger instance with the specified name.

    The logger will inherit the root logger's configuration.

    Args:
        name: The name for the logger. If None, returns the root logger.

    Returns:
        A configured logger instance
    """
    return logging.getLogger(name) if name else logging.getLogger()

def log_config(config) -> None:
    """Log configuration settings (passwords excluded).

    Args:
        config: Loaded Config object
    """
    logger = get_logger(__name__)

    db_config = config.database
    logger.info("Database Configuration:")
    logger.info(f"  Host: {db_config.host}")
    logger.info(f"  Port: {db_config.port}")
    logger.info(f"  Database: {db_config.database}")
    logger.info(f"  SSL: {db_config.ssl}")

    storage_config = config.storage
    logger.info("Storage Configuration:")
    logger.info(f"  Root: {storage_config.root}")
    logger.info(f"  Modules: {', '.join(storage_config.modules) or '(none)'}")

    backup_config = config.backup
    logger.info("Backup Configuration:")
    logger.info(f"  Tenants: {backup_config.tenants}")
    logger.info(f"  Ignored Modules: {backup_config.ignored_modules}")
    logger.info(f"  Ignored Tables: {backup_config.ignored_tables}")
    logger.info(f"  Parallel Tasks: {backup_config.parallel_tasks}")
    logger.info(f"  Retry Delay: {backup_config.retry_delay}")

    logger.info("Logging Configuration:")
    logger.info(f"  Level: {config.logging.level}")
    logger.info(f"  File: {config.logging.file}")
