"""
SQLite-based read-only access to a tangle replica.

Provides:
- Keyed lookup of transaction records and transaction metadata, each
  returned as a handle that must be released exactly once
- A lazy walk over every key of the metadata index
- Storage size counters

The database is opened with ``mode=ro``; nothing in this module writes.
"""

import logging
import sqlite3
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, TypeVar

from ..codec import Hash
from .schema import (
    DB_FILENAME,
    METADATA_TABLE,
    REQUIRED_TABLES,
    TRANSACTIONS_TABLE,
    MetadataFlag,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StoreError(Exception):
    """Raised when the tangle database cannot be opened or read."""

    pass


def _blob(row: sqlite3.Row, column: str) -> bytes:
    value = row[column]
    if not isinstance(value, bytes):
        raise TypeError(f"{column} is {type(value).__name__}, expected blob")
    return value


def _integer(row: sqlite3.Row, column: str) -> int:
    value = row[column]
    if not isinstance(value, int):
        raise TypeError(f"{column} is {type(value).__name__}, expected integer")
    return value


def _index_key(value: Any) -> Hash:
    """
    Convert a stored index key to a Hash.

    Keys are blobs. Any other stored type is carried as its text form so the
    entry is still visited; lookups by that key then find nothing.
    """
    if isinstance(value, bytes):
        return Hash(value)
    logger.debug(f"index key stored as {type(value).__name__}: {value!r}")
    return Hash(str(value).encode("utf-8"))


class HandleReleasedError(RuntimeError):
    """Raised when a handle is used or released after its release."""

    pass


@dataclass(frozen=True)
class TransactionRecord:
    """Immutable stored transaction."""

    tx_hash: Hash
    data: bytes  # t5b1 packed trits

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "TransactionRecord":
        """Create from database row."""
        return cls(tx_hash=Hash(_blob(row, "tx_hash")), data=_blob(row, "data"))


@dataclass(frozen=True)
class TransactionMetadata:
    """Consensus metadata attached to a transaction."""

    tx_hash: Hash
    trunk_hash: Hash
    branch_hash: Hash
    bundle_hash: Hash
    flags: MetadataFlag
    confirmation_index: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "TransactionMetadata":
        """Create from database row."""
        return cls(
            tx_hash=Hash(_blob(row, "tx_hash")),
            trunk_hash=Hash(_blob(row, "trunk_hash")),
            branch_hash=Hash(_blob(row, "branch_hash")),
            bundle_hash=Hash(_blob(row, "bundle_hash")),
            flags=MetadataFlag(_integer(row, "flags")),
            confirmation_index=_integer(row, "confirmation_index"),
        )

    def _has(self, flag: MetadataFlag) -> bool:
        return bool(self.flags & flag)

    def is_solid(self) -> bool:
        return self._has(MetadataFlag.SOLID)

    def is_conflicting(self) -> bool:
        return self._has(MetadataFlag.CONFLICTING)

    def is_head(self) -> bool:
        return self._has(MetadataFlag.HEAD)

    def is_tail(self) -> bool:
        return self._has(MetadataFlag.TAIL)

    def is_value(self) -> bool:
        return self._has(MetadataFlag.VALUE)

    def get_confirmed(self) -> tuple[bool, int]:
        """Return (is_confirmed, confirmation_index).

        The index is only meaningful when the transaction is confirmed.
        """
        return self._has(MetadataFlag.CONFIRMED), self.confirmation_index


class CachedObject(Generic[T]):
    """
    Reference-counted handle to a stored value.

    Each handle must be released exactly once. Using it as a context
    manager releases it on every exit path.
    """

    def __init__(self, value: T, on_release: Callable[[], None]) -> None:
        self._value = value
        self._on_release = on_release
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def get(self) -> T:
        """Return the underlying value."""
        if self._released:
            raise HandleReleasedError("handle used after release")
        return self._value

    def release(self) -> None:
        """Give the handle back to the store."""
        if self._released:
            raise HandleReleasedError("handle already released")
        self._released = True
        self._on_release()

    def __enter__(self) -> "CachedObject[T]":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        return False


def resolve_db_path(db_path: Path | str) -> Path:
    """Accept either the database file or the directory that holds tangle.db."""
    path = Path(db_path)
    if path.is_dir():
        return path / DB_FILENAME
    return path


class TangleStore:
    """
    Read-only view of the transaction and metadata tables.

    Tracks every handle it hands out so callers can verify that each
    acquisition was matched by exactly one release.
    """

    def __init__(self, db_path: Path | str):
        """
        Open the tangle database.

        Args:
            db_path: Database file, or a directory containing tangle.db

        Raises:
            StoreError: if the database is missing, unreadable, or lacks
                the transaction/metadata tables
        """
        self.db_path = resolve_db_path(db_path)
        self._open_handles = 0
        self.handles_acquired = 0
        self.handles_released = 0
        self._conn = self._connect()
        self._check_schema()

    def _connect(self) -> sqlite3.Connection:
        """Open a read-only connection with row factory."""
        if not self.db_path.is_file():
            raise StoreError(f"tangle database not found: {self.db_path}")

        uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
        try:
            conn = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise StoreError(f"cannot open tangle database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        return conn

    def _check_schema(self) -> None:
        try:
            rows = self._conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            ).fetchall()
        except sqlite3.DatabaseError as e:
            self._conn.close()
            raise StoreError(f"cannot read tangle database {self.db_path}: {e}") from e

        tables = {row["name"] for row in rows}
        missing = [name for name in REQUIRED_TABLES if name not in tables]
        if missing:
            self._conn.close()
            raise StoreError(
                f"{self.db_path} is not a tangle database (missing tables: {', '.join(missing)})"
            )

    def close(self) -> None:
        """Close the connection."""
        if self._open_handles:
            logger.warning(f"Closing store with {self._open_handles} unreleased handle(s)")
        self._conn.close()

    def __enter__(self) -> "TangleStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Handle accounting
    # ------------------------------------------------------------------

    @property
    def open_handles(self) -> int:
        """Handles acquired but not yet released."""
        return self._open_handles

    def _acquire(self, value: T) -> CachedObject[T]:
        self._open_handles += 1
        self.handles_acquired += 1
        return CachedObject(value, self._release_handle)

    def _release_handle(self) -> None:
        self._open_handles -= 1
        self.handles_released += 1

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _fetch_one(self, query: str, params: tuple[Any, ...]) -> sqlite3.Row | None:
        try:
            return self._conn.execute(query, params).fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"lookup failed: {e}") from e

    def _decode_row(self, record_type: type[T], row: sqlite3.Row) -> T:
        try:
            return record_type.from_row(row)
        except (TypeError, ValueError) as e:
            raise StoreError(f"corrupt {record_type.__name__} row: {e}") from e

    def get_cached_transaction(self, tx_hash: Hash) -> CachedObject[TransactionRecord] | None:
        """
        Look up a transaction record.

        Returns:
            A handle to release when done, or None if the record is absent
        """
        row = self._fetch_one(
            f"SELECT tx_hash, data FROM {TRANSACTIONS_TABLE} WHERE tx_hash = ?",
            (bytes(tx_hash),),
        )
        if row is None:
            return None
        return self._acquire(self._decode_row(TransactionRecord, row))

    def get_cached_metadata(self, tx_hash: Hash) -> CachedObject[TransactionMetadata] | None:
        """
        Look up transaction metadata.

        Returns:
            A handle to release when done, or None if no metadata exists
        """
        row = self._fetch_one(
            f"""
            SELECT tx_hash, flags, confirmation_index, trunk_hash, branch_hash, bundle_hash
            FROM {METADATA_TABLE}
            WHERE tx_hash = ?
            """,
            (bytes(tx_hash),),
        )
        if row is None:
            return None
        return self._acquire(self._decode_row(TransactionMetadata, row))

    # ------------------------------------------------------------------
    # Index walk and sizes
    # ------------------------------------------------------------------

    def iter_metadata_hashes(self) -> Iterator[Hash]:
        """
        Yield every key of the metadata index, in index order.

        Lazy and single-pass; stop early by breaking out of the loop.
        """
        try:
            cursor = self._conn.execute(f"SELECT tx_hash FROM {METADATA_TABLE}")
        except sqlite3.Error as e:
            raise StoreError(f"cannot walk metadata index: {e}") from e

        try:
            for row in cursor:
                yield _index_key(row["tx_hash"])
        except sqlite3.Error as e:
            raise StoreError(f"metadata index walk failed: {e}") from e
        finally:
            cursor.close()

    def _count(self, table: str) -> int:
        row = self._fetch_one(f"SELECT COUNT(*) AS n FROM {table}", ())
        return row["n"]

    def transaction_count(self) -> int:
        """Number of stored transaction records."""
        return self._count(TRANSACTIONS_TABLE)

    def metadata_count(self) -> int:
        """Number of entries in the metadata index."""
        return self._count(METADATA_TABLE)
