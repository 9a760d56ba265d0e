"""Command-line interface commands."""
from functools import partial
from pathlib import Path
from typing import List

from ..core.config import Config
from ..core.exceptions import BackupError, DatabaseError
from ..core.logging import get_logger
from ..domain.models import TenantContext
from ..infrastructure.mariadb import DatabaseRegistry, MariaDB
from ..infrastructure.modules import ModuleRegistry
from ..infrastructure.parallel import process_with_threadpool
from ..infrastructure.storage import DiskStorageProvider
from ..services.tasks import BackupTask, RestoreTask, is_procedure_dump
from ..ui.progress import ProgressAccumulator

logger = get_logger(__name__)

# Set while a restore runs so the interrupt handler can close the connection
active_database = None

def backup_command(args, config: Config, ui) -> int:
    """Write a backup manifest for every requested tenant."""
    tenants = args.tenants or config.backup.tenants
    if not tenants:
        logger.error("No tenants specified for backup")
        return 1

    provider = DiskStorageProvider(config.storage.root, config.storage.modules)
    registry = ModuleRegistry()
    ignored_modules = config.backup.ignored_modules + (args.ignore_module or [])
    output_dir = args.output_dir or config.backup.output_dir

    def run_tenant(tenant_id: int):
        context = TenantContext(tenant_id, config_path=args.config or "")
        task = BackupTask(
            context,
            provider,
            output_dir=output_dir,
            module_registry=registry,
            progress=ProgressAccumulator(partial(ui.display_progress, label=f"tenant {tenant_id}"))
        )
        for module in ignored_modules:
            task.ignore_module(module)
        task.process_storage = not args.skip_storage
        return task.run()

    logger.info(f"Backing up {len(tenants)} tenants with {config.backup.parallel_tasks} parallel tasks")
    manifests, errors = process_with_threadpool(tenants, run_tenant, config.backup.parallel_tasks)

    for manifest in sorted(manifests, key=lambda m: m.tenant_id):
        ui.display_backup_result(manifest)

    for tenant_id, message in errors:
        logger.error(f"Backup of tenant {tenant_id} failed: {message}")

    print("\nBackup Summary:")
    print(f"Tenants processed: {len(tenants)}")
    print(f"Successful: {len(manifests)}")
    print(f"Module errors: {sum(len(m.errors) for m in manifests)}")
    print(f"Failed: {len(errors)}")

    return 0 if not errors else 1

def collect_dump_files(args) -> List[Path]:
    """Dump files named on the command line or found in the input directory."""
    files = [Path(f) for f in args.files or []]
    if args.input_dir:
        directory = Path(args.input_dir)
        if not directory.is_dir():
            logger.error(f"Directory not found: {directory}")
            return []
        files.extend(sorted(directory.glob('*.sql')))
        logger.info(f"Found {len(files)} SQL files to restore")

    return files

def restore_command(args, config: Config, ui) -> int:
    """Replay dump files into the configured database."""
    global active_database

    files = collect_dump_files(args)
    if not files:
        logger.error("No SQL files specified for restore")
        return 1

    missing = [f for f in files if not f.is_file()]
    if missing:
        logger.error(f"Files not found: {', '.join(str(f) for f in missing)}")
        return 1

    # Procedure dumps run after the data dumps
    files = sorted(files, key=is_procedure_dump)

    tenant_id = args.tenant or (config.backup.tenants[0] if config.backup.tenants else 1)

    try:
        db_config = config.database
        if args.connection_string:
            registry = DatabaseRegistry()
            name = registry.register_database(tenant_id, args.connection_string)
            db_config = registry.get(name)
            logger.info(f"Using database {name} from connection string")

        context = TenantContext(tenant_id, config_path=args.config or "")
        with MariaDB(db_config) as database:
            active_database = database
            task = RestoreTask(
                context,
                database,
                files,
                retry_delay=config.backup.retry_delay,
                progress=ProgressAccumulator(ui.display_progress)
            )
            for table in config.backup.ignored_tables + (args.ignore_table or []):
                task.ignore_table(table)
            results = task.run()
    except DatabaseError as e:
        logger.error(f"Restore failed: {str(e)}")
        return 1
    except BackupError as e:
        logger.error(f"Error restoring data: {str(e)}")
        return 1
    finally:
        active_database = None

    ui.display_restore_result(results)
    return 1 if any(r.status == "error" for r in results) else 0
