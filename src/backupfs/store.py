"""SQLite-backed store of tracked path records."""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Tuple, Union

from .exceptions import RecordParseError, StoreError, StoreLockError
from .models import PathRecord

logger = logging.getLogger(__name__)


class StoreTransaction:
    """Record operations available inside an exclusive store transaction."""

    def __init__(self, conn: sqlite3.Connection, table_name: str):
        self._conn = conn
        self._table_name = table_name

    def records(self) -> List[Tuple[int, bytes]]:
        """
        Read every record in insertion order.

        Returns:
            List of (id, payload) tuples
        """
        cursor = self._conn.execute(
            f"SELECT id, payload FROM {self._table_name} ORDER BY id"
        )
        return [(row[0], bytes(row[1])) for row in cursor.fetchall()]

    def insert(self, payload: bytes) -> int:
        """Append a record and return its ID."""
        cursor = self._conn.execute(
            f"INSERT INTO {self._table_name} (payload) VALUES (?)",
            (sqlite3.Binary(payload),)
        )
        return cursor.lastrowid

    def update(self, record_id: int, payload: bytes) -> None:
        """Replace the payload of a record."""
        self._conn.execute(
            f"UPDATE {self._table_name} SET payload = ? WHERE id = ?",
            (sqlite3.Binary(payload), record_id)
        )

    def delete(self, record_id: int) -> None:
        """Delete a record."""
        self._conn.execute(
            f"DELETE FROM {self._table_name} WHERE id = ?",
            (record_id,)
        )


class PathStore:
    """
    Durable record set shared by the daemon and the registration CLI.

    Records are opaque payloads; parsing them is left to callers. Every
    public operation runs in its own exclusive transaction, which is the
    only lock taken on the store and is never held between calls.
    """

    def __init__(
        self,
        db_path: Union[str, Path],
        table_name: str = "paths",
        lock_timeout: float = 10.0,
    ):
        """
        Initialize the store, creating the schema if needed.

        Args:
            db_path: Path to the SQLite database file
            table_name: Name of the table holding path records
            lock_timeout: Seconds to wait for the exclusive lock

        Raises:
            StoreError: If the database cannot be opened or initialized
        """
        self.db_path = Path(db_path)
        self.table_name = table_name
        self.lock_timeout = lock_timeout

        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(
            str(self.db_path),
            timeout=self.lock_timeout,
            isolation_level=None,  # Explicit transactions only
        )

    def _init_db(self) -> None:
        """Initialize the database schema."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._connect()
            try:
                conn.execute(f"""
                    CREATE TABLE IF NOT EXISTS {self.table_name} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        payload BLOB NOT NULL
                    )
                """)
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as e:
            raise StoreError(f"Cannot initialize path store at {self.db_path}: {e}") from e

    @contextmanager
    def exclusive(self) -> Iterator[StoreTransaction]:
        """
        Hold the exclusive store lock for the duration of the block.

        Commits when the block exits normally and rolls back otherwise.
        Not re-entrant: nesting two blocks from one thread blocks until
        the lock timeout expires.

        Raises:
            StoreLockError: If the lock cannot be acquired in time
            StoreError: On any other database failure
        """
        try:
            conn = self._connect()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open path store {self.db_path}: {e}") from e

        try:
            try:
                conn.execute("BEGIN EXCLUSIVE")
            except sqlite3.OperationalError as e:
                raise StoreLockError(f"Path store is locked: {self.db_path}: {e}") from e

            try:
                yield StoreTransaction(conn, self.table_name)
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                conn.execute("ROLLBACK")
                raise StoreError(f"Path store transaction failed: {e}") from e
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

    def add_path(self, path: Union[str, Path]) -> bool:
        """
        Register a path with an empty fingerprint.

        Args:
            path: Absolute path to track

        Returns:
            True if a record was created, False if the path was already tracked
        """
        record = PathRecord(path=str(path))

        with self.exclusive() as tx:
            for _, payload in tx.records():
                try:
                    existing = PathRecord.from_bytes(payload)
                except RecordParseError:
                    continue
                if existing.path == record.path:
                    return False
            tx.insert(record.to_bytes())

        logger.info(f"Added tracked path: {record.path}")
        return True

    def remove_path(self, path: Union[str, Path]) -> int:
        """
        Unregister a path. Unparseable records are left alone.

        Args:
            path: Absolute path to stop tracking

        Returns:
            Number of records removed
        """
        path = str(path)
        removed = 0

        with self.exclusive() as tx:
            for record_id, payload in tx.records():
                try:
                    existing = PathRecord.from_bytes(payload)
                except RecordParseError:
                    continue
                if existing.path == path:
                    tx.delete(record_id)
                    removed += 1

        if removed:
            logger.info(f"Removed tracked path: {path}")
        return removed

    def list_records(self) -> List[PathRecord]:
        """
        Get every parseable record.

        Returns:
            Records in insertion order
        """
        records = []
        with self.exclusive() as tx:
            for record_id, payload in tx.records():
                try:
                    records.append(PathRecord.from_bytes(payload))
                except RecordParseError as e:
                    logger.warning(f"Skipping unparseable record {record_id}: {e}")
        return records

    def append_raw(self, payload: bytes) -> int:
        """
        Store a payload as-is, without validating it.

        Returns:
            The ID of the new record
        """
        with self.exclusive() as tx:
            return tx.insert(payload)

    def raw_records(self) -> List[Tuple[int, bytes]]:
        """
        Get every payload exactly as stored.

        Returns:
            List of (id, payload) tuples
        """
        with self.exclusive() as tx:
            return tx.records()
