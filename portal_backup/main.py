"""Main entry point for the portal backup tool."""
import argparse
import logging
import signal
import sys

from portal_backup.cli import commands
from portal_backup.core.config import load_config
from portal_backup.core.exceptions import BackupError, ConfigError
from portal_backup.core.logging import log_config, setup_logging
from portal_backup.ui.factory import INTERFACE_TYPES, create_interface

def signal_handler(sig, frame):
    """Handle SIGINT (Ctrl+C) signal for graceful exit.

    Args:
        sig: Signal number
        frame: Current stack frame
    """
    print("\nReceived interrupt signal. Cleaning up and exiting gracefully...")
    logging.info("Received interrupt signal. Performing cleanup before exit.")

    if commands.active_database is not None:
        logging.info("Closing restore database connection")
        commands.active_database.disconnect()

    logging.info("Cleanup complete. Exiting.")
    sys.exit(130)

def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Portal tenant backup/restore tool")
    parser.add_argument("--config", help="Path to configuration file")
    parser.add_argument("--ui", choices=INTERFACE_TYPES, default="rich_ascii", help="Progress display")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Backup command
    backup_parser = subparsers.add_parser("backup", help="Collect the storage files of tenants")
    backup_parser.add_argument("tenants", nargs="*", type=int, help="Tenant ids (default: tenants from config)")
    backup_parser.add_argument("--output-dir", help="Directory for the backup manifests")
    backup_parser.add_argument("--ignore-module", action="append", help="Module to leave out (repeatable)")
    backup_parser.add_argument("--skip-storage", action="store_true", help="Do not enumerate storage files")

    # Restore command
    restore_parser = subparsers.add_parser("restore", help="Replay SQL dumps into the database")
    restore_parser.add_argument("files", nargs="*", help="SQL dump files to replay")
    restore_parser.add_argument("--input-dir", help="Directory containing SQL dump files")
    restore_parser.add_argument("--tenant", type=int, help="Tenant the dumps belong to")
    restore_parser.add_argument("--connection-string", help="Target database as Server=..;Database=..;User ID=..;Password=..")
    restore_parser.add_argument("--ignore-table", action="append", help="Table whose statements are skipped (repeatable)")

    args = parser.parse_args(argv)

    # Show help if no command is specified
    if not args.command:
        parser.print_help()
        sys.exit(0)

    return args

def main(argv=None) -> int:
    """Run the portal backup tool.

    Returns:
        int: Exit code
    """
    signal.signal(signal.SIGINT, signal_handler)

    args = parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {str(e)}", file=sys.stderr)
        return 1

    if args.verbose:
        config.logging.level = 'DEBUG'
    setup_logging(config.logging)
    log_config(config)

    ui = create_interface(args.ui)

    try:
        if args.command == "backup":
            return commands.backup_command(args, config, ui)
        elif args.command == "restore":
            return commands.restore_command(args, config, ui)
    except BackupError as e:
        logging.error(f"{args.command.capitalize()} failed: {str(e)}")
        return 1

    return 1

def run():
    """Console script entry point."""
    sys.exit(main())

if __name__ == "__main__":
    run()
