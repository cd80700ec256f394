"""
Export row: one denormalized snapshot of a transaction and its metadata.

Field names and order are the output contract:
TxHash, TrunkHash, BranchHash, BundleHash, ConfirmationIndex, IsSolid,
IsConfirmed, IsConflicting, IsHead, IsTail, IsValue, Trytes.

ConfirmationIndex is null for unconfirmed transactions, and can be left out
entirely (include_confirmation_index=False) for consumers expecting the
older output shape that never carried it.
"""

from dataclasses import dataclass
from typing import Any

from ..codec import Hash
from ..store import TransactionMetadata


@dataclass(frozen=True)
class ExportRow:
    """Denormalized transaction row, built per item and discarded after writing."""

    tx_hash: str
    trunk_hash: str
    branch_hash: str
    bundle_hash: str
    confirmation_index: int | None
    is_solid: bool
    is_confirmed: bool
    is_conflicting: bool
    is_head: bool
    is_tail: bool
    is_value: bool
    trytes: str

    def to_dict(self, include_confirmation_index: bool = True) -> dict[str, Any]:
        """Convert to the output document (insertion order is field order)."""
        data: dict[str, Any] = {
            "TxHash": self.tx_hash,
            "TrunkHash": self.trunk_hash,
            "BranchHash": self.branch_hash,
            "BundleHash": self.bundle_hash,
        }
        if include_confirmation_index:
            data["ConfirmationIndex"] = self.confirmation_index
        data.update(
            {
                "IsSolid": self.is_solid,
                "IsConfirmed": self.is_confirmed,
                "IsConflicting": self.is_conflicting,
                "IsHead": self.is_head,
                "IsTail": self.is_tail,
                "IsValue": self.is_value,
                "Trytes": self.trytes,
            }
        )
        return data


def build_row(tx_hash: Hash, metadata: TransactionMetadata, trytes: str) -> ExportRow:
    """
    Merge a transaction's decoded payload and its metadata into one row.

    TxHash is always the index key that produced the row.
    """
    is_confirmed, confirmation_index = metadata.get_confirmed()

    return ExportRow(
        tx_hash=tx_hash.trytes(),
        trunk_hash=metadata.trunk_hash.trytes(),
        branch_hash=metadata.branch_hash.trytes(),
        bundle_hash=metadata.bundle_hash.trytes(),
        confirmation_index=confirmation_index if is_confirmed else None,
        is_solid=metadata.is_solid(),
        is_confirmed=is_confirmed,
        is_conflicting=metadata.is_conflicting(),
        is_head=metadata.is_head(),
        is_tail=metadata.is_tail(),
        is_value=metadata.is_value(),
        trytes=trytes,
    )
