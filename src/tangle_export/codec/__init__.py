"""
Trinary codec.

Converts the node's packed byte storage into canonical trytes:
- Hash: 49-byte transaction hash with a trytes() rendering
- transaction_to_trytes: stored payload -> 2673 trytes
"""

from .trinary import (
    HASH_BYTES_SIZE,
    HASH_TRYTES_SIZE,
    TRANSACTION_BYTES_SIZE,
    TRANSACTION_TRYTES_SIZE,
    DecodeError,
    Hash,
    transaction_from_trytes,
    transaction_to_trytes,
)

__all__ = [
    "HASH_BYTES_SIZE",
    "HASH_TRYTES_SIZE",
    "TRANSACTION_BYTES_SIZE",
    "TRANSACTION_TRYTES_SIZE",
    "DecodeError",
    "Hash",
    "transaction_from_trytes",
    "transaction_to_trytes",
]
