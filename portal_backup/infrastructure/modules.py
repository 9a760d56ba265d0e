"""Registry of logical modules and the storage modules they own."""
from typing import Dict, List, Optional, Sequence

from portal_backup.domain.interfaces import ModuleRegistryInterface
from portal_backup.domain.models import ModuleDescriptor

# Storage modules whose files are part of a tenant backup
ALLOWED_STORAGE_MODULES = (
    "forum",
    "photo",
    "bookmarking",
    "wiki",
    "files",
    "crm",
    "projects",
    "logo",
    "fckuploaders",
    "talk",
    "mailaggregator",
    "whitelabel",
    "customnavigation",
    "userPhotos",
)

DEFAULT_MODULES = (
    ModuleDescriptor("tenants"),
    ModuleDescriptor("core", ("logo", "userPhotos", "whitelabel", "customnavigation", "fckuploaders")),
    ModuleDescriptor("community", ("forum", "photo", "bookmarking", "wiki")),
    ModuleDescriptor("files", ("files",)),
    ModuleDescriptor("projects", ("projects",)),
    ModuleDescriptor("crm", ("crm",)),
    ModuleDescriptor("mail", ("mailaggregator",)),
    ModuleDescriptor("talk", ("talk",)),
    ModuleDescriptor("calendar"),
    ModuleDescriptor("webstudio"),
)

def is_storage_module_allowed(storage_module: str) -> bool:
    """Check a storage module against the backup allow-list."""
    return storage_module in ALLOWED_STORAGE_MODULES

class ModuleRegistry(ModuleRegistryInterface):
    """In-memory module registry."""

    def __init__(self, modules: Sequence[ModuleDescriptor] = DEFAULT_MODULES):
        self._modules = list(modules)
        self._by_storage: Dict[str, ModuleDescriptor] = {}
        for module in self._modules:
            for storage_module in module.storage_modules:
                self._by_storage[storage_module] = module

    @property
    def all_modules(self) -> List[ModuleDescriptor]:
        return list(self._modules)

    def get_by_storage_module(self, storage_module: str) -> Optional[ModuleDescriptor]:
        return self._by_storage.get(storage_module)
