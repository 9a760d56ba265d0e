"""Discovery of the files a tenant owns across storage modules."""
from typing import Callable, Dict, Iterable, List, Optional

from portal_backup.core.exceptions import StorageUnavailableError
from portal_backup.core.logging import get_logger
from portal_backup.domain.interfaces import ModuleRegistryInterface, StorageProviderInterface
from portal_backup.domain.models import BackupFileInfo, EnumerationResult, ModuleError
from portal_backup.infrastructure.modules import is_storage_module_allowed

logger = get_logger(__name__)

ROOT_MARKER = "\\"
ALL_FILES = "*.*"

class ModuleFileEnumerator:
    """Lists every file of a tenant, module by module.

    Each declared domain is listed on its own; the module root listing then
    adds only the paths that contain no ``<domain>/`` substring, so files
    reachable through a domain are not reported twice.
    """

    def __init__(self, storage_provider: StorageProviderInterface, module_registry: ModuleRegistryInterface):
        self.storage_provider = storage_provider
        self.module_registry = module_registry

    def is_storage_module_allowed(self, storage_module: str, ignored_modules: Iterable[str] = ()) -> bool:
        """Check the allow-list and the ignore list for a storage module.

        A storage module is ignored either by its own name or through the
        logical module it belongs to.
        """
        ignored = set(ignored_modules)
        if not is_storage_module_allowed(storage_module) or storage_module in ignored:
            return False

        module = self.module_registry.get_by_storage_module(storage_module)
        return module is None or module.name not in ignored

    def get_allowed_modules(self, ignored_modules: Optional[Iterable[str]] = None) -> List[str]:
        """Storage modules that take part in a backup, in configuration order."""
        ignored = set(ignored_modules or ())
        return [
            module for module in self.storage_provider.get_module_list()
            if self.is_storage_module_allowed(module, ignored)
        ]

    def enumerate(
        self,
        tenant_id: int,
        ignored_modules: Optional[Iterable[str]] = None,
        on_module_done: Optional[Callable[[str], None]] = None
    ) -> EnumerationResult:
        """Collect the files of all allowed modules for a tenant.

        Args:
            tenant_id: Tenant whose files are listed
            ignored_modules: Storage or logical module names to leave out
            on_module_done: Called with each module name once it is processed,
                whether or not its storage could be read

        Returns:
            Deduplicated files in listing order plus one error per module
            whose storage could not be read
        """
        collected: Dict[BackupFileInfo, None] = {}
        errors: List[ModuleError] = []

        for module in self.get_allowed_modules(ignored_modules):
            try:
                for file_info in self.enumerate_module(tenant_id, module):
                    collected.setdefault(file_info, None)
            except StorageUnavailableError as e:
                logger.warning(str(e))
                errors.append(ModuleError(module=module, message=str(e)))

            if on_module_done:
                on_module_done(module)

        logger.info(f"Found {len(collected)} files for tenant {tenant_id}")
        return EnumerationResult(files=list(collected), errors=errors)

    def enumerate_module(self, tenant_id: int, module: str) -> List[BackupFileInfo]:
        """List the files of one storage module.

        Any error raised by the storage collaborator is reported as
        StorageUnavailableError for this module.

        Raises:
            StorageUnavailableError: If the module storage cannot be opened or listed
        """
        try:
            store = self.storage_provider.get_storage(tenant_id, module)
            domains = self.storage_provider.get_domain_list(module)

            files = []
            for domain in domains:
                files.extend(
                    BackupFileInfo(domain, module, path, tenant_id)
                    for path in store.list_files_relative(domain, ROOT_MARKER, ALL_FILES, True)
                )

            # Plain substring match: domain "photos" also hides "myphotos/x"
            files.extend(
                BackupFileInfo("", module, path, tenant_id)
                for path in store.list_files_relative("", ROOT_MARKER, ALL_FILES, True)
                if all(domain + "/" not in path for domain in domains)
            )
        except StorageUnavailableError:
            raise
        except Exception as e:
            raise StorageUnavailableError(module, str(e)) from e
        return files
