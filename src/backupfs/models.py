"""Data models for the backupfs package."""

import json
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, Dict

from .exceptions import RecordParseError


# Tracked absolute path -> last observed fingerprint.
Registry = Dict[str, bytes]

EMPTY_FINGERPRINT = b""


def is_absolute_path(path: str) -> bool:
    """Check whether a path string is absolute on either POSIX or Windows."""
    return PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute()


@dataclass
class PathRecord:
    """
    Persisted representation of a tracked path.

    Attributes:
        path: Absolute path of the tracked file or directory
        fingerprint: Last observed fingerprint (empty means never observed)
        extra: Fields owned by other components, written back verbatim
    """
    path: str
    fingerprint: bytes = EMPTY_FINGERPRINT
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if isinstance(self.path, Path):
            self.path = str(self.path)
        if not is_absolute_path(self.path):
            raise ValueError(f"path must be absolute: {self.path}")

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data = {"path": self.path, "fingerprint": self.fingerprint.hex()}
        for key, value in self.extra.items():
            if key not in data:
                data[key] = value
        return data

    def to_bytes(self) -> bytes:
        """Serialize to the payload stored in the path store."""
        return json.dumps(self.to_dict()).encode("utf-8")

    @classmethod
    def from_dict(cls, data: Any) -> "PathRecord":
        """Create from dictionary, raising RecordParseError on bad input."""
        if not isinstance(data, dict):
            raise RecordParseError(f"record is not an object: {type(data).__name__}")

        path = data.get("path")
        if not isinstance(path, str) or not is_absolute_path(path):
            raise RecordParseError(f"record has no absolute path: {path!r}")

        fingerprint = parse_fingerprint(data.get("fingerprint"))
        extra = {k: v for k, v in data.items() if k not in ("path", "fingerprint")}
        return cls(path=path, fingerprint=fingerprint, extra=extra)

    @classmethod
    def from_bytes(cls, payload: bytes) -> "PathRecord":
        """Parse a raw store payload."""
        try:
            data = json.loads(payload)
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            raise RecordParseError(f"record is not valid JSON: {e}") from e
        return cls.from_dict(data)

    def __str__(self) -> str:
        return f"backuppath: {self.path}"


def parse_fingerprint(value: Any) -> bytes:
    """
    Decode a persisted fingerprint field.

    Args:
        value: The raw field value (hex string, or None when never observed)

    Returns:
        The fingerprint bytes

    Raises:
        RecordParseError: If the value is not a hex string
    """
    if value is None:
        return EMPTY_FINGERPRINT
    if not isinstance(value, str):
        raise RecordParseError(f"fingerprint must be a hex string: {value!r}")
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise RecordParseError(f"fingerprint is not valid hex: {value!r}") from e


def replace_fingerprint(payload: bytes, fingerprint: bytes) -> bytes:
    """
    Rewrite only the fingerprint field of a parseable payload.

    Every other key keeps its value and position.

    Args:
        payload: Raw record payload that parses as a PathRecord
        fingerprint: New fingerprint to store

    Returns:
        The re-serialized payload
    """
    data = json.loads(payload)
    data["fingerprint"] = fingerprint.hex()
    return json.dumps(data).encode("utf-8")
