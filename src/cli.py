#!/usr/bin/env python3
"""
CLI for the backup daemon and its tracked path records.

Usage:
    python -m src.cli daemon --dest ~/.backupfs_archive --interval 5
    python -m src.cli add ./documents
    python -m src.cli remove ./documents
    python -m src.cli list
"""

import argparse
import logging
import signal
import sys
from pathlib import Path
from typing import List, Optional

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from src.backupfs import (
    BackupConfig,
    DaemonLoop,
    Monitor,
    PathStore,
    PersistenceAdapter,
    StoreError,
    ZipArchiver,
)


logger = logging.getLogger("cli")


class GracefulShutdown:
    """Forward SIGINT/SIGTERM to the daemon loop as a stop request."""

    def __init__(self, loop: DaemonLoop):
        self.loop = loop
        signal.signal(signal.SIGINT, self._handler)
        signal.signal(signal.SIGTERM, self._handler)

    def _handler(self, signum, frame):
        logger.info("Received shutdown signal, stopping...")
        self.loop.request_stop()


def setup_logging(verbose: bool = False) -> None:
    """Configure console logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def to_absolute_path(path: str, cwd: Optional[Path] = None) -> Path:
    """
    Resolve a user-supplied path against the working directory.

    Args:
        path: Absolute or relative path, possibly starting with ``./``
        cwd: Directory relative paths are joined to (default: current)

    Returns:
        Absolute path
    """
    candidate = Path(path).expanduser()
    if candidate.is_absolute():
        return candidate
    return (cwd or Path.cwd()) / candidate


def open_store(config: BackupConfig) -> PathStore:
    """Open the path store, exiting the process if that fails."""
    try:
        return PathStore(config.db_path, lock_timeout=config.lock_timeout)
    except StoreError as e:
        logger.error(f"Cannot open path store: {e}")
        sys.exit(1)


def cmd_daemon(args):
    """Run the backup daemon."""
    config = BackupConfig.from_env(
        destination_root=args.dest,
        db_path=args.db,
        poll_interval=args.interval,
    )
    store = open_store(config)

    monitor = Monitor(ZipArchiver(config.compression_method), config.destination_root)
    loop = DaemonLoop(monitor, PersistenceAdapter(store), poll_interval=config.poll_interval)
    GracefulShutdown(loop)

    logger.info(f"Destination: {config.destination_root}")
    logger.info(f"Database: {config.db_path}")
    logger.info(f"Poll interval: {config.poll_interval}s")
    logger.info("Press Ctrl+C to stop")

    try:
        loop.run()
    except StoreError as e:
        logger.error(f"Daemon stopped: {e}")
        sys.exit(1)

    logger.info("exit")


def cmd_add(args):
    """Register a path for backup."""
    config = BackupConfig.from_env(db_path=args.db)
    path = to_absolute_path(args.path)

    if not path.exists():
        logger.error(f"Path does not exist: {path}")
        sys.exit(1)

    store = open_store(config)
    if store.add_path(path):
        print(f"added: {path}")
    else:
        print(f"already tracked: {path}")


def cmd_remove(args):
    """Unregister a path."""
    config = BackupConfig.from_env(db_path=args.db)
    path = to_absolute_path(args.path)

    store = open_store(config)
    if store.remove_path(path):
        print(f"removed: {path}")
    else:
        print(f"not tracked: {path}")


def cmd_list(args):
    """List tracked paths."""
    config = BackupConfig.from_env(db_path=args.db)
    store = open_store(config)

    for record in store.list_records():
        print(record)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Backup daemon and tracked path management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Track a directory
  python -m src.cli add ./documents

  # Run the daemon
  python -m src.cli daemon --dest ~/.backupfs_archive

  # Show tracked paths
  python -m src.cli list
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--db", help="Path store database (or set BACKUPFS_DB)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    daemon_parser = subparsers.add_parser("daemon", help="Run the backup daemon")
    daemon_parser.add_argument("--dest", help="Archive destination root (or set BACKUPFS_DEST)")
    daemon_parser.add_argument("--interval", type=float, help="Seconds between poll cycles")
    daemon_parser.set_defaults(func=cmd_daemon)

    add_parser = subparsers.add_parser("add", help="Register a backup target")
    add_parser.add_argument("path", help="Directory or file path")
    add_parser.set_defaults(func=cmd_add)

    remove_parser = subparsers.add_parser("remove", help="Delete a backup target")
    remove_parser.add_argument("path", help="Directory or file path")
    remove_parser.set_defaults(func=cmd_remove)

    list_parser = subparsers.add_parser("list", help="Show backup targets")
    list_parser.set_defaults(func=cmd_list)

    return parser


def main(argv: Optional[List[str]] = None):
    # Load .env from project root
    _env_file = Path(__file__).parent.parent / ".env"
    if _env_file.exists():
        load_dotenv(_env_file)
    else:
        load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    args.func(args)


if __name__ == "__main__":
    main()
