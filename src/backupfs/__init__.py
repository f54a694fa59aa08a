"""
backupfs Package

A polling backup daemon that archives registered files and directories
whenever their metadata changes.

Features:
- Metadata fingerprints (names, timestamps, type and read-only flags)
- Timestamped ZIP snapshots mirroring the source layout
- Per-path failure isolation within a poll cycle
- SQLite-backed path records that survive restarts
"""

from .models import (
    EMPTY_FINGERPRINT,
    PathRecord,
    Registry,
)

from .config import BackupConfig

from .exceptions import (
    BackupError,
    FingerprintError,
    ArchiveError,
    RecordParseError,
    StoreError,
    StoreLockError,
)

from .fingerprint import compute_fingerprint
from .archiver import BaseArchiver, ZipArchiver
from .monitor import Monitor
from .store import PathStore
from .persistence import PersistenceAdapter
from .daemon import CancellationToken, DaemonLoop, DaemonState


__all__ = [
    # Models
    "EMPTY_FINGERPRINT",
    "PathRecord",
    "Registry",
    # Config
    "BackupConfig",
    # Exceptions
    "BackupError",
    "FingerprintError",
    "ArchiveError",
    "RecordParseError",
    "StoreError",
    "StoreLockError",
    # Components
    "compute_fingerprint",
    "BaseArchiver",
    "ZipArchiver",
    "Monitor",
    "PathStore",
    "PersistenceAdapter",
    # Daemon
    "CancellationToken",
    "DaemonLoop",
    "DaemonState",
]

__version__ = "0.1.0"
