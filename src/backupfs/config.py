"""Configuration for the backupfs package."""

import os
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict


COMPRESSION_METHODS: Dict[str, int] = {
    "stored": zipfile.ZIP_STORED,
    "deflated": zipfile.ZIP_DEFLATED,
}


@dataclass
class BackupConfig:
    """
    Configuration options for the backup daemon.

    Attributes:
        destination_root: Directory receiving archives
        db_path: Path to the SQLite database holding tracked path records
        poll_interval: Seconds to sleep between poll cycles
        lock_timeout: Seconds to wait for the exclusive store lock
        compression: ZIP compression method ("stored" or "deflated")
    """
    destination_root: Path = field(default_factory=lambda: Path("~/.backupfs_archive"))
    db_path: Path = field(default_factory=lambda: Path("~/.backupfs"))
    poll_interval: float = 5.0
    lock_timeout: float = 10.0
    compression: str = "deflated"

    def __post_init__(self):
        self.destination_root = Path(self.destination_root).expanduser()
        self.db_path = Path(self.db_path).expanduser()
        self.poll_interval = float(self.poll_interval)
        self.lock_timeout = float(self.lock_timeout)

        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive: {self.poll_interval}")
        if self.lock_timeout < 0:
            raise ValueError(f"lock_timeout must not be negative: {self.lock_timeout}")
        if self.compression not in COMPRESSION_METHODS:
            raise ValueError(
                f"compression must be one of {sorted(COMPRESSION_METHODS)}: {self.compression}"
            )

    @property
    def compression_method(self) -> int:
        """zipfile constant for the configured compression."""
        return COMPRESSION_METHODS[self.compression]

    @classmethod
    def from_env(cls, **overrides: Any) -> "BackupConfig":
        """
        Build a config from BACKUPFS_* environment variables.

        Explicit keyword overrides that are not None take precedence.

        Args:
            **overrides: Field values to use instead of the environment

        Returns:
            Resolved configuration
        """
        values: Dict[str, Any] = {}
        env_map = {
            "destination_root": "BACKUPFS_DEST",
            "db_path": "BACKUPFS_DB",
            "poll_interval": "BACKUPFS_INTERVAL",
            "compression": "BACKUPFS_COMPRESSION",
        }
        for name, env_var in env_map.items():
            value = os.environ.get(env_var)
            if value:
                values[name] = value

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
