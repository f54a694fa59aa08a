"""Reconciliation of the in-memory registry with the path store."""

import logging

from .exceptions import RecordParseError
from .models import PathRecord, Registry, replace_fingerprint
from .store import PathStore

logger = logging.getLogger(__name__)


class PersistenceAdapter:
    """
    Loads the registry at startup and writes fingerprints back at shutdown.

    Each call holds the store's exclusive lock for its own duration only.
    Records the core cannot parse are never dropped or rewritten.
    """

    def __init__(self, store: PathStore):
        self.store = store

    def load(self) -> Registry:
        """
        Build a registry from every parseable record.

        Unparseable records are logged and skipped. When a path appears more
        than once, the most recently inserted record wins.

        Returns:
            Mapping of tracked path -> fingerprint

        Raises:
            StoreError: If the store cannot be read
        """
        registry: Registry = {}

        with self.store.exclusive() as tx:
            for record_id, payload in tx.records():
                try:
                    record = PathRecord.from_bytes(payload)
                except RecordParseError as e:
                    logger.error(f"Skipping record {record_id}: {e}")
                    continue
                registry[record.path] = record.fingerprint

        logger.info(f"Loaded {len(registry)} tracked path(s)")
        return registry

    def save(self, registry: Registry) -> int:
        """
        Write registry fingerprints back into the matching records.

        Only the fingerprint field of a record changes. Records whose path is
        not in the registry, and records that do not parse, are untouched.
        Paths in the registry without a record are not re-created.

        Args:
            registry: Current path -> fingerprint mapping

        Returns:
            Number of records rewritten

        Raises:
            StoreError: If the store cannot be written
        """
        updated = 0

        with self.store.exclusive() as tx:
            for record_id, payload in tx.records():
                try:
                    record = PathRecord.from_bytes(payload)
                except RecordParseError as e:
                    logger.error(f"Leaving record {record_id} unchanged: {e}")
                    continue

                fingerprint = registry.get(record.path)
                if fingerprint is None or fingerprint == record.fingerprint:
                    continue

                tx.update(record_id, replace_fingerprint(payload, fingerprint))
                updated += 1

        logger.info(f"Saved {updated} fingerprint(s)")
        return updated
