"""Test fixtures and utilities."""

import sqlite3
from pathlib import Path

import pytest

from tangle_export.codec import (
    HASH_TRYTES_SIZE,
    TRANSACTION_TRYTES_SIZE,
    Hash,
    transaction_from_trytes,
)
from tangle_export.store import MetadataFlag
from tangle_export.store.schema import METADATA_TABLE, SCHEMA_STATEMENTS, TRANSACTIONS_TABLE


def tryte_hash(prefix: str) -> str:
    """81-tryte hash starting with prefix, padded with '9'."""
    return prefix.ljust(HASH_TRYTES_SIZE, "9")


def tx_trytes(prefix: str = "AAA") -> str:
    """2673-tryte transaction starting with prefix, padded with '9'."""
    return prefix.ljust(TRANSACTION_TRYTES_SIZE, "9")


class ReplicaBuilder:
    """Writes a tangle replica for tests (the exporter itself never writes)."""

    def __init__(self, db_path: Path):
        self.db_path = db_path
        with sqlite3.connect(db_path) as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(statement)
        conn.close()

    def add_transaction(self, tx_hash: str, trytes: str | None = None, raw: bytes | None = None):
        data = raw if raw is not None else transaction_from_trytes(trytes or tx_trytes())
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                f"INSERT INTO {TRANSACTIONS_TABLE} (tx_hash, data) VALUES (?, ?)",
                (bytes(Hash.from_trytes(tx_hash)), data),
            )
        conn.close()

    def add_metadata(
        self,
        tx_hash: str,
        flags: MetadataFlag = MetadataFlag(0),
        confirmation_index: int = 0,
        trunk: str = "",
        branch: str = "",
        bundle: str = "",
    ):
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                f"""
                INSERT INTO {METADATA_TABLE}
                    (tx_hash, flags, confirmation_index, trunk_hash, branch_hash, bundle_hash)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    bytes(Hash.from_trytes(tx_hash)),
                    int(flags),
                    confirmation_index,
                    bytes(Hash.from_trytes(tryte_hash(trunk))),
                    bytes(Hash.from_trytes(tryte_hash(branch))),
                    bytes(Hash.from_trytes(tryte_hash(bundle))),
                ),
            )
        conn.close()

    def add(self, tx_hash: str, trytes: str | None = None, **metadata):
        """Add a transaction together with its metadata."""
        self.add_transaction(tx_hash, trytes=trytes)
        self.add_metadata(tx_hash, **metadata)

    def set_column(self, table: str, tx_hash: str, column: str, value):
        """Overwrite one stored value, whatever its type."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                f"UPDATE {table} SET {column} = ? WHERE tx_hash = ?",
                (value, bytes(Hash.from_trytes(tx_hash))),
            )
        conn.close()

    def add_text_index_key(self, key: str):
        """Metadata entry whose key is stored as TEXT instead of a blob."""
        link = bytes(Hash.from_trytes(tryte_hash("")))
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                f"""
                INSERT INTO {METADATA_TABLE}
                    (tx_hash, flags, confirmation_index, trunk_hash, branch_hash, bundle_hash)
                VALUES (?, 0, 0, ?, ?, ?)
                """,
                (key, link, link, link),
            )
        conn.close()


@pytest.fixture
def temp_db(tmp_path) -> Path:
    """Temporary tangle database path for testing."""
    return tmp_path / "tangle.db"


@pytest.fixture
def replica(temp_db) -> ReplicaBuilder:
    """Empty tangle replica with both tables created."""
    return ReplicaBuilder(temp_db)


@pytest.fixture
def output_file(tmp_path) -> Path:
    """Output path for exported rows."""
    return tmp_path / "output.txt"
