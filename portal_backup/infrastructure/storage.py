"""Local disk implementation of the module storage collaborator."""
import fnmatch
import os
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional

from ..core.exceptions import StorageUnavailableError
from ..core.logging import get_logger
from ..domain.interfaces import StorageInterface, StorageProviderInterface

logger = get_logger(__name__)

# Markers callers use for "the domain root" in list_files_relative
ROOT_MARKERS = ("", "/", "\\")

class DiskStorage(StorageInterface):
    """Storage scope of one module for one tenant.

    Files live under ``<root>/<tenant>/<module>/``; a domain is a
    sub-directory of the module directory.
    """

    def __init__(self, base_path: Path, module: str):
        self.base_path = Path(base_path)
        self.module = module

    def list_files_relative(
        self,
        domain: str,
        root_marker: str = "/",
        pattern: str = "*",
        recursive: bool = True
    ) -> List[str]:
        """List files relative to a domain directory.

        Args:
            domain: Domain name, '' for the module root
            root_marker: Sub-directory inside the domain; '/', '\\' or '' for its root
            pattern: Glob pattern matched against file names
            recursive: Whether to descend into sub-directories

        Returns:
            Sorted list of '/'-separated relative paths

        Raises:
            StorageUnavailableError: If the directory cannot be read
        """
        start = self.base_path / domain if domain else self.base_path
        if root_marker not in ROOT_MARKERS:
            start = start / root_marker.strip("/\\")

        if not start.exists():
            return []
        if not start.is_dir():
            raise StorageUnavailableError(self.module, f"{start} is not a directory")

        def _raise(error: OSError):
            raise error

        result = []
        try:
            for current, dirs, files in os.walk(start, onerror=_raise):
                dirs.sort()
                for name in sorted(files):
                    # "*.*" is the catch-all pattern of the storage layer
                    if pattern in ("*", "*.*") or fnmatch.fnmatch(name, pattern):
                        relative = Path(current, name).relative_to(start)
                        result.append(relative.as_posix())
                if not recursive:
                    break
        except OSError as e:
            raise StorageUnavailableError(self.module, str(e))

        return result

    def open_read_stream(self, path: str) -> BinaryIO:
        """Open a stored file for binary reading.

        Raises:
            StorageUnavailableError: If the file cannot be opened
        """
        try:
            return open(self.base_path / path, 'rb')
        except OSError as e:
            raise StorageUnavailableError(self.module, str(e))

class DiskStorageProvider(StorageProviderInterface):
    """Builds DiskStorage scopes from the storage configuration."""

    def __init__(self, root: str, modules: Optional[Dict[str, List[str]]] = None):
        self.root = Path(root)
        self.modules = dict(modules or {})

    def get_module_list(self) -> List[str]:
        return list(self.modules)

    def get_domain_list(self, module: str) -> List[str]:
        return list(self.modules.get(module, []))

    def get_storage(self, tenant_id: int, module: str) -> DiskStorage:
        """Open the storage scope of a module for a tenant.

        Raises:
            StorageUnavailableError: If the storage root is missing
        """
        if not self.root.is_dir():
            raise StorageUnavailableError(module, f"Storage root {self.root} does not exist")
        if module not in self.modules:
            raise StorageUnavailableError(module, "Module is not configured")

        logger.debug(f"Opening storage for tenant {tenant_id}, module {module}")
        return DiskStorage(self.root / str(tenant_id) / module, module)
