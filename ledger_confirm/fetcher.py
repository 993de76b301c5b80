"""
Status fetcher — one batched status query per call.

Given a non-empty ordered sequence of signatures, performs exactly one
``get_signature_statuses`` round-trip and returns, in the same order, one
slot per input signature: None (absent) or a StatusRecord.

"Absent" covers every reason the node may not know a signature (not yet
seen, evicted from its status cache, never submitted through it). The
fetcher does not distinguish them.

No retries. No caching. Transport failures propagate as TransportError.
"""

from __future__ import annotations

from collections.abc import Sequence

from ledger_confirm.errors import TransportError
from ledger_confirm.rpc.client import LedgerClient
from ledger_confirm.status import Signature, StatusRecord


class StatusFetcher:
    """Order- and length-preserving batched status lookups."""

    def __init__(self, client: LedgerClient) -> None:
        self._client = client

    async def fetch(self, signatures: Sequence[Signature]) -> list[StatusRecord | None]:
        """Fetch statuses for ``signatures`` in one query.

        Raises:
            ValueError: If ``signatures`` is empty.
            TransportError: If the round-trip fails or the node answers
                with a different number of entries than requested.
        """
        if not signatures:
            raise ValueError("signatures must be non-empty")

        records = await self._client.get_signature_statuses(list(signatures))

        if len(records) != len(signatures):
            raise TransportError(
                f"expected {len(signatures)} statuses, got {len(records)}",
                error_code="MALFORMED_RESPONSE",
                details={"requested": len(signatures), "received": len(records)},
            )
        return list(records)
