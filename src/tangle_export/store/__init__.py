"""
Tangle store (SQLite-based, read-only).

Lookups into the local tangle replica:
- Transaction records (immutable payloads)
- Transaction metadata (consensus flags and graph links)
- The metadata index walk

Every lookup returns a handle that must be released exactly once.
"""

from .schema import MetadataFlag
from .sqlite_store import (
    CachedObject,
    HandleReleasedError,
    StoreError,
    TangleStore,
    TransactionMetadata,
    TransactionRecord,
)

__all__ = [
    "CachedObject",
    "HandleReleasedError",
    "MetadataFlag",
    "StoreError",
    "TangleStore",
    "TransactionMetadata",
    "TransactionRecord",
]
