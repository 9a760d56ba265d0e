"""Tenant backup and restore tasks."""
import json
import time
from abc import ABC, abstractmethod
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional, Sequence, Union

from portal_backup.core.exceptions import IllegalStateError
from portal_backup.core.logging import get_logger
from portal_backup.domain.interfaces import (
    DatabaseInterface,
    ModuleRegistryInterface,
    StorageProviderInterface,
)
from portal_backup.domain.models import (
    BackupManifest,
    EnumerationResult,
    ModuleDescriptor,
    ReplayResult,
    TenantContext,
)
from portal_backup.infrastructure.modules import ModuleRegistry
from portal_backup.services.dump_reader import parse_delimiter
from portal_backup.services.enumerator import ModuleFileEnumerator
from portal_backup.services.replay import DEFAULT_RETRY_DELAY, DumpReplayer, ProcedureLoader
from portal_backup.ui.progress import ProgressAccumulator

logger = get_logger(__name__)

PROCEDURES_SUFFIX = "procedures.sql"
MANIFEST_NAME = "tenant-{tenant_id}-manifest.json"

class PortalTask(ABC):
    """Common state of a task running for one tenant.

    Modules and tables can be ignored until ``run()`` is called; from then
    on the tenant context is frozen.
    """

    def __init__(
        self,
        context: TenantContext,
        storage_provider: Optional[StorageProviderInterface] = None,
        module_registry: Optional[ModuleRegistryInterface] = None,
        progress: Optional[ProgressAccumulator] = None,
        logger=None
    ):
        self.context = context
        self.storage_provider = storage_provider
        self.module_registry = module_registry or ModuleRegistry()
        self.progress = progress or ProgressAccumulator()
        self.logger = logger or get_logger(__name__)
        self.process_storage = True

    @property
    def tenant_id(self) -> int:
        return self.context.tenant_id

    def ignore_module(self, module_name: str) -> None:
        self.context.ignore_module(module_name)

    def ignore_table(self, table_name: str) -> None:
        self.context.ignore_table(table_name)

    def get_modules_to_process(self) -> List[ModuleDescriptor]:
        """Registered modules that are neither ignored nor off the allow-list."""
        return [
            module for module in self.module_registry.all_modules
            if module.allowed and module.name not in self.context.ignored_modules
        ]

    def get_files_to_process(self) -> EnumerationResult:
        """Enumerate the tenant's files over the allowed storage modules.

        Raises:
            IllegalStateError: If the task has no storage provider
        """
        return self._get_enumerator().enumerate(self.tenant_id, self.context.ignored_modules)

    def run(self) -> Any:
        """Freeze the tenant context and run the job."""
        self.context.start()
        self.logger.info(f"Starting {type(self).__name__} for tenant {self.tenant_id}")
        start_time = time.time()
        result = self.run_job()
        self.logger.info(
            f"{type(self).__name__} for tenant {self.tenant_id} finished in {time.time() - start_time:.2f}s"
        )
        return result

    @abstractmethod
    def run_job(self) -> Any:
        """Do the task's work; called once by run()."""

    def _get_enumerator(self) -> ModuleFileEnumerator:
        if self.storage_provider is None:
            raise IllegalStateError(f"No storage provider configured for tenant {self.tenant_id}")
        return ModuleFileEnumerator(self.storage_provider, self.module_registry)

class BackupTask(PortalTask):
    """Collects the storage files of a tenant into a manifest.

    Progress advances by one step per storage module.
    """

    def __init__(self, context: TenantContext, storage_provider: StorageProviderInterface,
                 output_dir: Optional[Union[str, Path]] = None, **kwargs):
        super().__init__(context, storage_provider=storage_provider, **kwargs)
        self.output_dir = output_dir

    def run_job(self) -> BackupManifest:
        start_time = time.time()
        manifest = BackupManifest(tenant_id=self.tenant_id)

        if self.process_storage:
            enumerator = self._get_enumerator()
            modules = enumerator.get_allowed_modules(self.context.ignored_modules)
            self.progress.set_steps_count(max(1, len(modules)))

            result = enumerator.enumerate(
                self.tenant_id,
                self.context.ignored_modules,
                on_module_done=self._on_module_done
            )
            manifest.files = result.files
            manifest.errors = result.errors
        else:
            self.logger.info(f"Storage processing disabled for tenant {self.tenant_id}")

        manifest.duration = time.time() - start_time
        if self.output_dir:
            manifest.output_path = str(write_manifest(manifest, self.output_dir))

        self.progress.set_progress(100)
        return manifest

    def _on_module_done(self, module: str) -> None:
        self.logger.debug(f"Module {module} processed")
        self.progress.set_step_completed()

class RestoreTask(PortalTask):
    """Replays dump files into a database, one progress step per file.

    Files named ``*procedures.sql`` or starting with a ``DELIMITER`` line
    are loaded as procedure dumps; every other file is replayed as a data
    dump inside its own transaction.
    """

    def __init__(self, context: TenantContext, database: DatabaseInterface,
                 files: Sequence[Union[str, Path]], retry_delay: float = DEFAULT_RETRY_DELAY, **kwargs):
        super().__init__(context, **kwargs)
        self.database = database
        self.files = [Path(f) for f in files]
        self.retry_delay = retry_delay

    def run_job(self) -> List[ReplayResult]:
        results = []
        self.progress.set_steps_count(max(1, len(self.files)))

        replayer = DumpReplayer(
            self.database,
            retry_delay=self.retry_delay,
            ignored_tables=self.context.ignored_tables,
            progress_callback=self.progress.set_current_step_progress
        )
        loader = ProcedureLoader(self.database)

        for path in self.files:
            with open(path, "rb") as stream:
                if is_procedure_dump(path):
                    self.logger.info(f"Loading procedures from {path.name}")
                    result = loader.load_procedures(stream, source=path.name)
                else:
                    self.logger.info(f"Restoring {path.name}")
                    result = replayer.replay(stream, source=path.name, total_size=path.stat().st_size)
            results.append(result)
            self.progress.set_current_step_progress(100)

        self.progress.set_progress(100)
        return results

def is_procedure_dump(path: Union[str, Path]) -> bool:
    """Whether a dump file holds stored procedures with a custom delimiter."""
    path = Path(path)
    if path.name.endswith(PROCEDURES_SUFFIX):
        return True
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return parse_delimiter(f.readline()) is not None

def write_manifest(manifest: BackupManifest, output_dir: Union[str, Path]) -> Path:
    """Write a backup manifest as JSON and return its path."""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / MANIFEST_NAME.format(tenant_id=manifest.tenant_id)

    data = {
        "tenant_id": manifest.tenant_id,
        "created": datetime.now().isoformat(),
        "duration": round(manifest.duration, 3),
        "files": [asdict(f) for f in manifest.files],
        "errors": [asdict(e) for e in manifest.errors],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    logger.info(f"Manifest for tenant {manifest.tenant_id} written to {path}")
    return path
