"""Abstract interfaces for the collaborators of the backup engine."""
from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional, Sequence

from .models import ModuleDescriptor

class DatabaseInterface(ABC):
    """Interface for database operations."""

    @abstractmethod
    def begin_transaction(self) -> None:
        """Start a transaction on the current connection."""
        pass

    @abstractmethod
    def execute(self, sql: str) -> int:
        """Execute a statement and return the number of affected rows."""
        pass

    @abstractmethod
    def commit(self) -> None:
        """Commit the current transaction."""
        pass

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the current transaction."""
        pass

class StorageInterface(ABC):
    """Storage scope of one module for one tenant."""

    @abstractmethod
    def list_files_relative(
        self,
        domain: str,
        root_marker: str,
        pattern: str,
        recursive: bool
    ) -> List[str]:
        """List file paths relative to the domain (or module root for '')."""
        # Implementation contract: paths use '/' separators
        pass

    @abstractmethod
    def open_read_stream(self, path: str) -> BinaryIO:
        """Open a stored file for reading."""
        pass

class StorageProviderInterface(ABC):
    """Hands out per-tenant storage scopes."""

    @abstractmethod
    def get_module_list(self) -> List[str]:
        """Names of all configured storage modules."""
        pass

    @abstractmethod
    def get_domain_list(self, module: str) -> List[str]:
        """Domains declared by a storage module."""
        pass

    @abstractmethod
    def get_storage(self, tenant_id: int, module: str) -> StorageInterface:
        """Open the storage scope of a module for a tenant."""
        pass

class ModuleRegistryInterface(ABC):
    """Maps storage modules to logical modules."""

    @property
    @abstractmethod
    def all_modules(self) -> Sequence[ModuleDescriptor]:
        pass

    @abstractmethod
    def get_by_storage_module(self, storage_module: str) -> Optional[ModuleDescriptor]:
        pass
