"""
Change detection and archival of tracked paths.

Archives are written under ``destination_root`` mirroring the absolute
layout of each tracked path. If the destination root itself lies inside a
tracked tree, every archive written shows up as a change on the next cycle
and the path is re-archived indefinitely; keep the two apart.

Paths are processed one at a time, so a stalled filesystem call on one path
delays every other path in the same cycle.
"""

import logging
import threading
import time
from pathlib import Path
from typing import List, Optional, Union

from .archiver import BaseArchiver
from .exceptions import ArchiveError, FingerprintError
from .fingerprint import compute_fingerprint
from .models import EMPTY_FINGERPRINT, Registry

logger = logging.getLogger(__name__)


class NanoClock:
    """Strictly increasing nanosecond timestamps for archive file names."""

    def __init__(self):
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return a timestamp greater than every previously returned one."""
        with self._lock:
            self._last = max(time.time_ns(), self._last + 1)
            return self._last


def relative_destination(path: Union[str, Path]) -> Path:
    """
    Derive the directory, relative to the destination root, for a path.

    The root anchor is stripped; a path that currently names a regular file
    contributes its containing directory instead.

    Args:
        path: Absolute tracked path

    Returns:
        Relative directory under the destination root
    """
    path = Path(path)
    relative = path.relative_to(path.anchor) if path.anchor else path
    if path.is_file():
        relative = relative.parent
    return relative


class Monitor:
    """
    Owns the registry of tracked paths and archives the ones that change.

    The registry maps absolute path strings to their last observed
    fingerprint and is only mutated by ``poll`` and ``set_registry``.
    """

    def __init__(
        self,
        archiver: BaseArchiver,
        destination_root: Union[str, Path],
        registry: Optional[Registry] = None,
        clock: Optional[NanoClock] = None,
    ):
        """
        Initialize the monitor.

        Args:
            archiver: Archive writer invoked for every changed path
            destination_root: Base directory receiving archives
            registry: Initial path -> fingerprint mapping
            clock: Timestamp source for archive names
        """
        self.archiver = archiver
        self.destination_root = Path(destination_root)
        self._registry: Registry = dict(registry or {})
        self._clock = clock or NanoClock()
        logger.debug(f"Monitor destination: {self.destination_root}")

    @property
    def registry(self) -> Registry:
        """The live path -> fingerprint mapping."""
        return self._registry

    def set_registry(self, registry: Registry) -> None:
        """Replace the registry, typically with the result of a load."""
        self._registry = dict(registry)

    def tracked_paths(self) -> List[str]:
        """Return the tracked paths."""
        return list(self._registry.keys())

    def destination_for(self, path: Union[str, Path]) -> Path:
        """
        Build a unique archive file path for a tracked path.

        Args:
            path: Absolute tracked path

        Returns:
            ``destination_root / <relative dir> / <nanos>.<extension>``
        """
        file_name = f"{self._clock.next()}.{self.archiver.extension}"
        return self.destination_root / relative_destination(path) / file_name

    def poll(self) -> int:
        """
        Run one poll cycle over every tracked path.

        A path whose fingerprint cannot be computed is treated as having an
        empty fingerprint, so it keeps looking changed until it is readable
        again. Archival failures are logged and skipped.

        Returns:
            Number of paths archived successfully in this cycle
        """
        count = 0

        for path, old_fingerprint in list(self._registry.items()):
            try:
                new_fingerprint = compute_fingerprint(path)
            except FingerprintError as e:
                logger.debug(f"Fingerprint unavailable for {path}: {e}")
                new_fingerprint = EMPTY_FINGERPRINT

            if new_fingerprint == old_fingerprint:
                continue

            self._registry[path] = new_fingerprint

            try:
                destination = self.destination_for(path)
                logger.debug(f"Archiving {path} -> {destination}")
                destination.parent.mkdir(parents=True, exist_ok=True)
                self.archiver.archive(Path(path), destination)
            except (ArchiveError, OSError) as e:
                logger.error(f"Failed to archive {path}: {e}")
                continue

            count += 1

        return count
