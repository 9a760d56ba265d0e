"""Configuration management for the portal backup engine."""
import os
from pathlib import Path
from typing import Dict, Any, Optional, List, Union
import yaml
from dataclasses import dataclass, field, asdict

from portal_backup.core.exceptions import ConfigError
from portal_backup.core.logging import LoggingConfig
from portal_backup.infrastructure.parallel import parse_worker_count

DEFAULT_CONFIG_FILE = "config/config.yaml"
DEFAULT_CONFIG_DIRS = [
    ".",
    "~/.portalbackup",
    "/etc/portalbackup",
]

@dataclass
class DatabaseConfig:
    """Database connection configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = ""
    use_pure: bool = True
    auth_plugin: Optional[str] = None
    ssl: bool = False
    ssl_ca: Optional[str] = None
    ssl_cert: Optional[str] = None
    ssl_key: Optional[str] = None

@dataclass
class StorageConfig:
    """Disk storage layout: module name -> declared domains."""
    root: str = "storage"
    modules: Dict[str, List[str]] = field(default_factory=dict)

@dataclass
class BackupConfig:
    """Backup/restore task configuration."""
    tenants: List[int] = field(default_factory=list)
    ignored_modules: List[str] = field(default_factory=list)
    ignored_tables: List[str] = field(default_factory=list)
    parallel_tasks: int = 1
    retry_delay: float = 1.0
    output_dir: str = "backups"

@dataclass
class Config:
    """Main configuration class."""
    database: DatabaseConfig
    storage: StorageConfig
    backup: BackupConfig
    logging: LoggingConfig

def load_config(config_file: Optional[Union[Path, str]] = None) -> Config:
    """Load configuration from a file.

    Args:
        config_file: Path to the configuration file

    Returns:
        Config object with loaded settings

    Raises:
        ConfigError: If the file is missing or cannot be parsed
    """
    if config_file is None:
        config_file = _find_config_file()
        if config_file is None:
            raise ConfigError("No configuration file found")

    if isinstance(config_file, str):
        config_file = Path(config_file)

    if not config_file.exists():
        raise ConfigError(f"Configuration file not found: {config_file}")

    try:
        with open(config_file, 'r') as f:
            config_dict = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid configuration file {config_file}: {str(e)}")

    db_config = config_dict.get('database') or {}
    database = DatabaseConfig(
        host=db_config.get('host', 'localhost'),
        port=db_config.get('port', 3306),
        user=db_config.get('user', 'root'),
        password=db_config.get('password', ''),
        database=db_config.get('database', ''),
        use_pure=db_config.get('use_pure', True),
        auth_plugin=db_config.get('auth_plugin'),
        ssl=db_config.get('ssl', False),
        ssl_ca=db_config.get('ssl_ca'),
        ssl_cert=db_config.get('ssl_cert'),
        ssl_key=db_config.get('ssl_key')
    )

    storage_config = config_dict.get('storage') or {}
    # A module may be declared without domains ("files:" with no list)
    modules = {
        str(name): list(domains or [])
        for name, domains in (storage_config.get('modules') or {}).items()
    }
    storage = StorageConfig(
        root=storage_config.get('root', 'storage'),
        modules=modules
    )

    backup_config = config_dict.get('backup') or {}
    try:
        tenants = [int(t) for t in backup_config.get('tenants', [])]
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid tenant list: {backup_config.get('tenants')}")
    backup = BackupConfig(
        tenants=tenants,
        ignored_modules=list(backup_config.get('ignored_modules', [])),
        ignored_tables=list(backup_config.get('ignored_tables', [])),
        parallel_tasks=parse_worker_count(backup_config.get('parallel_tasks', 1)),
        retry_delay=float(backup_config.get('retry_delay', 1.0)),
        output_dir=backup_config.get('output_dir', 'backups')
    )

    logging_config = config_dict.get('logging') or {}
    logging = LoggingConfig(
        level=logging_config.get('level', 'INFO'),
        file=logging_config.get('file', ''),
        format=logging_config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    return Config(
        database=database,
        storage=storage,
        backup=backup,
        logging=logging
    )

def _find_config_file() -> Optional[Path]:
    """Find the configuration file in the default locations.

    Returns:
        Path to the configuration file, or None if not found
    """
    if os.path.exists(DEFAULT_CONFIG_FILE):
        return Path(DEFAULT_CONFIG_FILE)

    for directory in DEFAULT_CONFIG_DIRS:
        expanded_dir = os.path.expanduser(directory)
        config_path = os.path.join(expanded_dir, "config.yaml")
        if os.path.exists(config_path):
            return Path(config_path)

    return None

def save_config(config: Config, file_path: Path) -> None:
    """Save the configuration to a file.

    Args:
        config: Configuration object
        file_path: Path to the file

    Raises:
        ConfigError: If the configuration cannot be saved
    """
    try:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)

        with open(file_path, 'w') as f:
            yaml.safe_dump(_config_to_dict(config), f, default_flow_style=False)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to save configuration: {str(e)}")

def _config_to_dict(config: Config) -> Dict[str, Any]:
    """Convert a configuration object to a dictionary.

    Args:
        config: Configuration object

    Returns:
        Dictionary representation of the configuration
    """
    result = {
        'database': asdict(config.database),
        'storage': asdict(config.storage),
        'backup': asdict(config.backup),
        'logging': asdict(config.logging)
    }

    # Remove None values for cleaner output
    for section in result.values():
        keys_to_remove = [k for k, v in section.items() if v is None]
        for key in keys_to_remove:
            del section[key]

    return result
