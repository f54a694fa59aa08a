"""
Metadata fingerprints for tracked paths.

A fingerprint summarizes the metadata tree below a path: relative entry
names, modification times truncated to whole seconds, and the type/read-only
flags of every regular file. Creation times only count on platforms that
expose ``st_birthtime`` (not Linux); elsewhere a fixed placeholder is hashed,
so a creation-time change alone is invisible there. File contents are never
read, so two files that differ only in their bytes fingerprint identically.

Entries are hashed in the order ``os.walk`` yields them, which follows the
directory listing order of the filesystem rather than lexical order.
"""

import hashlib
import logging
import os
import stat
from pathlib import Path, PurePath
from typing import Iterator, Union

from .exceptions import FingerprintError

logger = logging.getLogger(__name__)

FINGERPRINT_SIZE = 16


def walk_entries(root: Union[str, Path]) -> Iterator[str]:
    """
    Yield the root followed by every entry beneath it.

    Directories that cannot be listed are skipped silently; symlinked
    directories below the root are not descended into.

    Args:
        root: Path to walk

    Yields:
        Path strings, each starting with ``root``
    """
    root = os.fspath(root)
    if not os.path.lexists(root):
        return
    yield root
    if not os.path.isdir(root):
        return
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            yield os.path.join(dirpath, name)


def _relative_name(root: str, entry: str) -> str:
    if entry == root:
        return "."
    return PurePath(os.path.relpath(entry, root)).as_posix()


def _creation_seconds(info: os.stat_result) -> str:
    birthtime = getattr(info, "st_birthtime", None)
    if birthtime is None:
        return "-"
    return str(int(birthtime))


def compute_fingerprint(path: Union[str, Path]) -> bytes:
    """
    Compute the metadata fingerprint of a file or directory.

    Args:
        path: Tracked path to fingerprint

    Returns:
        A 16-byte MD5 digest

    Raises:
        FingerprintError: If the path does not exist, or any yielded file
            cannot be opened or stat-ed
    """
    root = os.fspath(path)
    if not os.path.lexists(root):
        raise FingerprintError(f"Path does not exist: {root}")

    lines = []
    for entry in walk_entries(root):
        if not os.path.isfile(entry):
            continue
        try:
            with open(entry, "rb") as f:
                info = os.fstat(f.fileno())
            link_info = os.lstat(entry)
        except OSError as e:
            raise FingerprintError(f"Cannot read metadata of {entry}: {e}") from e

        lines.append(_relative_name(root, entry))
        lines.append(_creation_seconds(info))
        lines.append(str(int(info.st_mtime)))
        if stat.S_ISDIR(info.st_mode):
            lines.append("is_dir")
        if stat.S_ISREG(info.st_mode):
            lines.append("is_file")
        if stat.S_ISLNK(link_info.st_mode):
            lines.append("is_symlink")
        if not info.st_mode & (stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH):
            lines.append("readonly")

    logger.debug(f"Fingerprinted {root} over {len(lines)} metadata lines")
    buffer = "".join(f"{line}\n" for line in lines)
    return hashlib.md5(buffer.encode("utf-8", "surrogateescape")).digest()
