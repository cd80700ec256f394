"""
Trinary encoding for tangle hashes and transactions.

Storage layout (as written by the node):
- Hashes are 243 balanced trits packed five per signed byte ("t5b1"),
  which gives 49 bytes per hash.
- Transactions are 8019 trits packed the same way, 1604 bytes each.

The canonical text form is trytes: three trits per character over the
alphabet "9ABCDEFGHIJKLMNOPQRSTUVWXYZ" ('9' = 0, 'A'..'M' = 1..13,
'N'..'Z' = -13..-1).
"""

# ============================================================================
# SSOT Constants for the trinary layout
# ============================================================================

TRYTE_ALPHABET = "9ABCDEFGHIJKLMNOPQRSTUVWXYZ"

TRITS_PER_TRYTE = 3
TRITS_PER_BYTE = 5

# Largest absolute value a single packed byte may carry (sum of 3**0..3**4)
MAX_BYTE_VALUE = 121

HASH_TRITS_SIZE = 243
HASH_TRYTES_SIZE = HASH_TRITS_SIZE // TRITS_PER_TRYTE
HASH_BYTES_SIZE = (HASH_TRITS_SIZE + TRITS_PER_BYTE - 1) // TRITS_PER_BYTE

TRANSACTION_TRITS_SIZE = 8019
TRANSACTION_TRYTES_SIZE = TRANSACTION_TRITS_SIZE // TRITS_PER_TRYTE
TRANSACTION_BYTES_SIZE = (TRANSACTION_TRITS_SIZE + TRITS_PER_BYTE - 1) // TRITS_PER_BYTE

# Value field position within a transaction (in trits). Only the first
# 33 trits of the 81-trit field may be non-zero.
VALUE_OFFSET = 6804
VALUE_SIZE = 81
VALUE_USABLE_SIZE = 33


class DecodeError(ValueError):
    """Raised when data is not a valid trinary encoding."""

    pass


def _int_to_trits(value: int, length: int) -> tuple[int, ...]:
    """Balanced ternary digits of value, least significant first."""
    trits = []
    for _ in range(length):
        remainder = value % 3
        value //= 3
        if remainder == 2:
            remainder = -1
            value += 1
        trits.append(remainder)
    return tuple(trits)


def _trits_to_int(trits) -> int:
    value = 0
    for trit in reversed(trits):
        value = value * 3 + trit
    return value


_BYTE_TO_TRITS = {
    value: _int_to_trits(value, TRITS_PER_BYTE)
    for value in range(-MAX_BYTE_VALUE, MAX_BYTE_VALUE + 1)
}

_TRYTE_TO_TRITS = {
    char: _int_to_trits(index if index <= 13 else index - 27, TRITS_PER_TRYTE)
    for index, char in enumerate(TRYTE_ALPHABET)
}


def bytes_to_trits(data: bytes, num_trits: int) -> list[int]:
    """
    Unpack t5b1-encoded bytes into exactly num_trits trits.

    Raises:
        DecodeError: on a length mismatch, a byte outside [-121, 121],
            or non-zero padding trits after num_trits.
    """
    expected = (num_trits + TRITS_PER_BYTE - 1) // TRITS_PER_BYTE
    if len(data) != expected:
        raise DecodeError(f"expected {expected} bytes for {num_trits} trits, got {len(data)}")

    trits: list[int] = []
    for position, byte in enumerate(data):
        value = byte - 256 if byte > 127 else byte
        chunk = _BYTE_TO_TRITS.get(value)
        if chunk is None:
            raise DecodeError(f"byte {position} has out-of-range value {value}")
        trits.extend(chunk)

    if any(trits[num_trits:]):
        raise DecodeError("non-zero padding trits")
    return trits[:num_trits]


def trits_to_bytes(trits) -> bytes:
    """Pack trits five per byte (t5b1), zero-padding the last group."""
    packed = bytearray()
    for start in range(0, len(trits), TRITS_PER_BYTE):
        chunk = list(trits[start : start + TRITS_PER_BYTE])
        packed.append(_trits_to_int(chunk) & 0xFF)
    return bytes(packed)


def trits_to_trytes(trits) -> str:
    """Render trits as trytes. The trit count must be a multiple of three."""
    if len(trits) % TRITS_PER_TRYTE:
        raise DecodeError(f"trit count {len(trits)} is not a multiple of {TRITS_PER_TRYTE}")
    return "".join(
        TRYTE_ALPHABET[_trits_to_int(trits[i : i + TRITS_PER_TRYTE]) % 27]
        for i in range(0, len(trits), TRITS_PER_TRYTE)
    )


def trytes_to_trits(trytes: str) -> list[int]:
    """Expand trytes into trits (three per character)."""
    trits: list[int] = []
    for position, char in enumerate(trytes):
        chunk = _TRYTE_TO_TRITS.get(char)
        if chunk is None:
            raise DecodeError(f"invalid tryte {char!r} at position {position}")
        trits.extend(chunk)
    return trits


class Hash(bytes):
    """Raw 49-byte transaction hash as stored in the tangle database."""

    def trytes(self) -> str:
        """Canonical 81-tryte form."""
        return trits_to_trytes(bytes_to_trits(self, HASH_TRITS_SIZE))

    @classmethod
    def from_trytes(cls, trytes: str) -> "Hash":
        if len(trytes) != HASH_TRYTES_SIZE:
            raise DecodeError(f"hash must be {HASH_TRYTES_SIZE} trytes, got {len(trytes)}")
        return cls(trits_to_bytes(trytes_to_trits(trytes)))

    def __str__(self) -> str:
        # Log-friendly: trytes when well-formed, hex otherwise
        try:
            return self.trytes()
        except DecodeError:
            return self.hex()


def transaction_to_trytes(raw: bytes) -> str:
    """
    Decode a stored transaction payload into its 2673-tryte canonical form.

    Pure and deterministic.

    Raises:
        DecodeError: if the payload has the wrong length, carries invalid
            bytes or padding, or has non-zero trits in the unused part of
            the value field.
    """
    if len(raw) != TRANSACTION_BYTES_SIZE:
        raise DecodeError(
            f"invalid transaction length: expected {TRANSACTION_BYTES_SIZE} bytes, got {len(raw)}"
        )

    trits = bytes_to_trits(raw, TRANSACTION_TRITS_SIZE)

    unused_value = trits[VALUE_OFFSET + VALUE_USABLE_SIZE : VALUE_OFFSET + VALUE_SIZE]
    if any(unused_value):
        raise DecodeError("invalid value field: non-zero trits beyond the first 33")

    return trits_to_trytes(trits)


def transaction_from_trytes(trytes: str) -> bytes:
    """Pack 2673 transaction trytes into their stored byte form."""
    if len(trytes) != TRANSACTION_TRYTES_SIZE:
        raise DecodeError(
            f"transaction must be {TRANSACTION_TRYTES_SIZE} trytes, got {len(trytes)}"
        )
    return trits_to_bytes(trytes_to_trits(trytes))
