"""Domain models for the portal backup engine."""
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

from portal_backup.core.exceptions import IllegalStateError, InvalidArgumentError

@dataclass(frozen=True)
class BackupFileInfo:
    """One file to back up.

    Equality and hashing cover all four fields so the same path listed
    through a domain and through the module root collapses to one entry.
    """
    domain: str
    module: str
    path: str
    tenant_id: int

@dataclass(frozen=True)
class ModuleDescriptor:
    """Storage module known to the module registry."""
    name: str                                 # logical module name (e.g. "community")
    storage_modules: Tuple[str, ...] = ()     # storage module names it owns
    allowed: bool = True                      # member of the backup allow-list

@dataclass
class TenantContext:
    """Per-task tenant settings.

    Ignore sets can only grow, and only until the task is started.
    """
    tenant_id: int
    config_path: str = ""
    ignored_modules: Set[str] = field(default_factory=set)
    ignored_tables: Set[str] = field(default_factory=set)
    started: bool = False

    def __post_init__(self):
        if not isinstance(self.tenant_id, int) or isinstance(self.tenant_id, bool) or self.tenant_id <= 0:
            raise InvalidArgumentError(f"Tenant id must be a positive integer, got {self.tenant_id!r}")
        self.ignored_modules = set(self.ignored_modules)
        self.ignored_tables = set(self.ignored_tables)

    def ignore_module(self, module_name: str) -> None:
        self._ensure_not_started()
        self.ignored_modules.add(module_name)

    def ignore_table(self, table_name: str) -> None:
        self._ensure_not_started()
        self.ignored_tables.add(table_name)

    def start(self) -> None:
        """Freeze the ignore sets."""
        self.started = True

    def _ensure_not_started(self) -> None:
        if self.started:
            raise IllegalStateError("Ignore lists cannot change once the task has started")

@dataclass
class ModuleError:
    """Failure to enumerate one storage module."""
    module: str
    message: str

@dataclass
class EnumerationResult:
    """Files collected for a tenant together with per-module failures."""
    files: List[BackupFileInfo] = field(default_factory=list)
    errors: List[ModuleError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

@dataclass
class ReplayResult:
    """Outcome of replaying one dump stream."""
    source: str = ""
    statements_total: int = 0
    statements_executed: int = 0
    statements_repaired: int = 0
    statements_retried: int = 0
    statements_skipped: int = 0
    statements_failed: int = 0
    duration: float = 0.0
    errors: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.statements_failed == 0:
            return "success"
        if self.statements_executed > 0:
            return "warning"
        return "error"

@dataclass
class BackupManifest:
    """Result of a backup run for one tenant."""
    tenant_id: int
    files: List[BackupFileInfo] = field(default_factory=list)
    errors: List[ModuleError] = field(default_factory=list)
    duration: float = 0.0
    output_path: Optional[str] = None
