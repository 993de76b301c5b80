"""
Ledger client protocol — the network boundary.

Defines the interface that the status fetcher and confirmation tracker
depend on, not a concrete implementation. This keeps the tracking logic
testable and keeps ``httpx`` out of the state machine.

Concrete implementations:
    - JsonRpcClient (JSON-RPC over an injectable transport)
    - FakeClient / scripted clients (tests)

Methods raise TransportError (or its RpcResponseError subclass) when the
round-trip fails. Results are plain values and frozen dataclasses.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from ledger_confirm.status import ConfirmationStatus, Signature, StatusRecord


@dataclass(frozen=True)
class LatestBlockhash:
    """A recent blockhash and the last block height at which it is valid.

    Attributes:
        blockhash: Base58 blockhash to reference in new transactions.
        last_valid_block_height: Transactions referencing ``blockhash``
            expire once the chain passes this block height.
        slot: Context slot the node answered at, if reported.
    """

    blockhash: str
    last_valid_block_height: int
    slot: int | None = None


@runtime_checkable
class LedgerClient(Protocol):
    """Interface for ledger node operations."""

    async def get_signature_statuses(
        self, signatures: Sequence[Signature]
    ) -> list[StatusRecord | None]:
        """Query statuses for ``signatures``.

        Returns one slot per input signature, in order: None when the node
        has no record of it, otherwise a StatusRecord.
        """
        ...

    async def send_transaction(self, transaction: bytes) -> Signature:
        """Submit a serialized, signed transaction and return its signature."""
        ...

    async def get_latest_blockhash(
        self, commitment: ConfirmationStatus | None = None
    ) -> LatestBlockhash:
        """Fetch a recent blockhash and its validity bound."""
        ...

    async def get_slot(self, commitment: ConfirmationStatus | None = None) -> int:
        """Fetch the slot the node has reached at ``commitment``."""
        ...
