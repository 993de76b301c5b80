"""
Confirmation data model — commitment levels and per-poll status records.

Commitment levels are ordered:

    processed < confirmed < finalized

Wire values are the lowercase names used by the node's JSON-RPC API.
``StatusRecord`` is one observation of one signature from one poll; it is
never mutated, only compared against the previous observation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import base58

# A transaction signature: base58 text of a 64-byte ed25519 signature.
Signature = str

SIGNATURE_BYTES = 64


class ConfirmationStatus(StrEnum):
    """Commitment level a transaction has reached."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def at_least(self, other: ConfirmationStatus) -> bool:
        """True if this level is as durable as ``other`` or more."""
        return self.rank >= other.rank


_RANK: dict[ConfirmationStatus, int] = {
    ConfirmationStatus.PROCESSED: 0,
    ConfirmationStatus.CONFIRMED: 1,
    ConfirmationStatus.FINALIZED: 2,
}


@dataclass(frozen=True)
class StatusRecord:
    """One poll's observation of a signature.

    Attributes:
        confirmation_status: Commitment level reached.
        confirmations: Slots since the transaction landed. None once
            finalized (rooted).
        error: Raw on-chain execution error payload, None on success.
        slot: Slot the transaction was processed in, if reported.
    """

    confirmation_status: ConfirmationStatus
    confirmations: int | None = None
    error: Any = None
    slot: int | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def satisfies(self, commitment: ConfirmationStatus) -> bool:
        """True if the record reached ``commitment`` without an error."""
        return not self.failed and self.confirmation_status.at_least(commitment)


def derive_confirmation_status(confirmations: int | None) -> ConfirmationStatus:
    """Infer a level for nodes that omit ``confirmationStatus``.

    No confirmation count means the slot is rooted; a positive count
    means it has been voted on by a supermajority.
    """
    if confirmations is None:
        return ConfirmationStatus.FINALIZED
    if confirmations > 0:
        return ConfirmationStatus.CONFIRMED
    return ConfirmationStatus.PROCESSED


def is_valid_signature(value: object) -> bool:
    """Check that ``value`` is base58 text decoding to a 64-byte signature."""
    if not isinstance(value, str) or not value:
        return False
    try:
        decoded = base58.b58decode(value)
    except ValueError:
        return False
    return len(decoded) == SIGNATURE_BYTES
