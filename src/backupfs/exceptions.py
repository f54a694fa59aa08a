"""Custom exceptions for the backupfs package."""


class BackupError(Exception):
    """Base exception for all backupfs errors."""
    pass


class FingerprintError(BackupError):
    """A path's metadata tree could not be fingerprinted."""
    pass


class ArchiveError(BackupError):
    """Writing an archive for a tracked path failed."""
    pass


class RecordParseError(BackupError):
    """A persisted path record could not be parsed."""
    pass


class StoreError(BackupError):
    """Error related to the persistent path store."""
    pass


class StoreLockError(StoreError):
    """The exclusive lock on the path store could not be acquired."""
    pass
