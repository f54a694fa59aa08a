"""
Archive writers for changed paths.

The monitor only depends on ``BaseArchiver``; any container format can be
plugged in by implementing ``archive`` and naming its file ``extension``.
"""

import logging
import os
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path, PurePath
from typing import Iterator, List, Tuple, Union

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)


class BaseArchiver(ABC):
    """Abstract base class for archive writers."""

    extension: str = ""

    @abstractmethod
    def archive(self, source: Path, destination: Path) -> None:
        """
        Write an archive of ``source`` to the file ``destination``.

        The destination is not checked for an existing file; callers pick
        unique names.

        Args:
            source: File or directory to archive
            destination: Path of the archive file to create

        Raises:
            ArchiveError: If reading the source or writing the archive fails
        """
        pass


def iter_archive_members(source: Path) -> Iterator[Tuple[Path, str]]:
    """
    Yield ``(file_path, entry_name)`` pairs for everything stored from source.

    A directory contributes every regular file beneath it under its
    forward-slash relative name; symlinks and directories are not stored.
    A single file contributes one entry named after its base name.

    Raises:
        ArchiveError: If the source is neither a file nor a directory
    """
    if source.is_dir():
        for dirpath, dirnames, filenames in os.walk(source):
            dirnames.sort()
            for name in sorted(filenames):
                file_path = Path(dirpath) / name
                if file_path.is_symlink() or not file_path.is_file():
                    continue
                yield file_path, PurePath(file_path.relative_to(source)).as_posix()
    elif source.is_file():
        yield source, source.name
    else:
        raise ArchiveError(f"Source does not exist: {source}")


class ZipArchiver(BaseArchiver):
    """Writes ZIP archives readable by standard extraction tools."""

    extension = "zip"

    def __init__(self, compression: int = zipfile.ZIP_DEFLATED):
        """
        Initialize the ZIP archiver.

        Args:
            compression: zipfile compression constant (stored or deflated)
        """
        self.compression = compression

    def archive(self, source: Union[str, Path], destination: Union[str, Path]) -> None:
        source = Path(source)
        destination = Path(destination)

        if not source.is_dir() and not source.is_file():
            raise ArchiveError(f"Source does not exist: {source}")

        count = 0
        try:
            with zipfile.ZipFile(
                destination,
                "w",
                compression=self.compression,
                strict_timestamps=False,  # pre-1980 mtimes clamp to 1980-01-01
            ) as zf:
                for file_path, name in iter_archive_members(source):
                    zf.write(file_path, arcname=name)
                    count += 1
        except (OSError, ValueError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
            raise ArchiveError(f"Failed to archive {source} to {destination}: {e}") from e

        logger.debug(f"Archived {count} file(s) from {source} to {destination}")


def list_entries(archive_path: Union[str, Path]) -> List[str]:
    """
    List entry names stored in a ZIP archive.

    Args:
        archive_path: Path to the archive

    Returns:
        Entry names in archive order
    """
    with zipfile.ZipFile(archive_path, "r") as zf:
        return zf.namelist()
