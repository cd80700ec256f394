"""
Table layout of the local tangle replica.

Tables:
- transactions: immutable transaction payloads, keyed by hash
- tx_metadata: mutable consensus metadata, keyed by hash (the metadata index)

The exporter only reads these tables. The DDL is kept here so that the
layout is defined in one place (the store checks for these tables when it
opens a database, and test fixtures build replicas from it).
"""

from enum import IntFlag

DB_FILENAME = "tangle.db"

TRANSACTIONS_TABLE = "transactions"
METADATA_TABLE = "tx_metadata"

REQUIRED_TABLES = (TRANSACTIONS_TABLE, METADATA_TABLE)


class MetadataFlag(IntFlag):
    """Bit positions of the metadata flags column."""

    SOLID = 1 << 0
    CONFIRMED = 1 << 1
    CONFLICTING = 1 << 2
    HEAD = 1 << 3
    TAIL = 1 << 4
    VALUE = 1 << 5


SCHEMA_STATEMENTS = (
    f"""
    CREATE TABLE IF NOT EXISTS {TRANSACTIONS_TABLE} (
        tx_hash BLOB PRIMARY KEY,
        data BLOB NOT NULL  -- t5b1 packed transaction trits
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {METADATA_TABLE} (
        tx_hash BLOB PRIMARY KEY,
        flags INTEGER NOT NULL DEFAULT 0,  -- MetadataFlag bitmask
        confirmation_index INTEGER NOT NULL DEFAULT 0,
        trunk_hash BLOB NOT NULL,
        branch_hash BLOB NOT NULL,
        bundle_hash BLOB NOT NULL
    )
    """,
)
