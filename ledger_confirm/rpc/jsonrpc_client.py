"""
Ledger JSON-RPC client — real network implementation of LedgerClient.

Translates JSON-RPC responses into StatusRecord / LatestBlockhash values.
Uses an injectable transport (JsonRpcTransport) so the HTTP layer can be
swapped for test fakes without changing parsing logic.

No retry loops. No secrets. No ledger logic beyond response parsing.

Response parsing targets the JSON-RPC 2.0 conventions of the node:
    - Success: {"jsonrpc": "2.0", "id": n, "result": ...}
    - Failure: {"jsonrpc": "2.0", "id": n, "error": {"code", "message", "data"}}
    - Context-wrapped results: {"context": {"slot": n}, "value": ...}
"""

from __future__ import annotations

import base64
import itertools
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ledger_confirm.errors import RpcResponseError, TransportError
from ledger_confirm.rpc.client import LatestBlockhash
from ledger_confirm.rpc.transport import HttpxTransport, JsonRpcTransport
from ledger_confirm.status import (
    ConfirmationStatus,
    Signature,
    StatusRecord,
    derive_confirmation_status,
    is_valid_signature,
)

if TYPE_CHECKING:
    from ledger_confirm.config import TrackerConfig

JSONRPC_VERSION = "2.0"

# next() on itertools.count is atomic under the GIL
_request_ids = itertools.count(1)


def _next_request_id() -> int:
    return next(_request_ids)


class JsonRpcClient:
    """Ledger JSON-RPC client implementing the LedgerClient protocol.

    Args:
        url: The node's JSON-RPC endpoint URL.
        transport: Injectable transport for HTTP POST. Defaults to
            HttpxTransport. Pass a FakeTransport for testing.
        skip_preflight: Ask the node to skip transaction simulation on
            ``sendTransaction``.
        preflight_commitment: Commitment used for preflight simulation.
    """

    def __init__(
        self,
        url: str,
        transport: JsonRpcTransport | None = None,
        *,
        skip_preflight: bool = False,
        preflight_commitment: ConfirmationStatus | None = None,
    ) -> None:
        self._url = url
        self._transport = transport or HttpxTransport()
        self._skip_preflight = skip_preflight
        self._preflight_commitment = preflight_commitment

    @classmethod
    def from_config(cls, config: TrackerConfig) -> JsonRpcClient:
        """Build a client for ``config.rpc_url`` with its request timeout."""
        return cls(config.rpc_url, HttpxTransport(timeout=config.request_timeout))

    @property
    def url(self) -> str:
        """The JSON-RPC endpoint URL."""
        return self._url

    # -----------------------------------------------------------------
    # LedgerClient protocol methods
    # -----------------------------------------------------------------

    async def get_signature_statuses(
        self, signatures: Sequence[Signature]
    ) -> list[StatusRecord | None]:
        """Query statuses via ``getSignatureStatuses``.

        Only the node's recent status cache is searched; older
        signatures come back absent.
        """
        result = await self._call(
            "getSignatureStatuses",
            [list(signatures), {"searchTransactionHistory": False}],
        )
        return _parse_signature_statuses(result)

    async def send_transaction(self, transaction: bytes) -> Signature:
        """Submit a signed transaction via ``sendTransaction``.

        The wire form is base64. The node's answer must be a well-formed
        signature, otherwise the envelope is treated as malformed.
        """
        config: dict[str, Any] = {"encoding": "base64"}
        if self._skip_preflight:
            config["skipPreflight"] = True
        if self._preflight_commitment is not None:
            config["preflightCommitment"] = str(self._preflight_commitment)

        encoded = base64.b64encode(transaction).decode("ascii")
        result = await self._call("sendTransaction", [encoded, config])
        if not is_valid_signature(result):
            raise _malformed("sendTransaction", f"not a signature: {result!r}")
        return result

    async def get_latest_blockhash(
        self, commitment: ConfirmationStatus | None = None
    ) -> LatestBlockhash:
        """Fetch a recent blockhash via ``getLatestBlockhash``."""
        result = await self._call("getLatestBlockhash", _commitment_params(commitment))
        return _parse_latest_blockhash(result)

    async def get_slot(self, commitment: ConfirmationStatus | None = None) -> int:
        """Fetch the current slot via ``getSlot``."""
        result = await self._call("getSlot", _commitment_params(commitment))
        if not isinstance(result, int) or isinstance(result, bool):
            raise _malformed("getSlot", f"expected integer slot, got {result!r}")
        return result

    # -----------------------------------------------------------------
    # Envelope handling
    # -----------------------------------------------------------------

    async def _call(self, method: str, params: list[Any]) -> Any:
        payload = {
            "jsonrpc": JSONRPC_VERSION,
            "id": _next_request_id(),
            "method": method,
            "params": params,
        }
        response = await self._transport.post_json(self._url, payload)
        return _unwrap_response(method, response)


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _malformed(method: str, detail: str) -> TransportError:
    return TransportError(
        f"malformed {method} response: {detail}",
        error_code="MALFORMED_RESPONSE",
        details={"method": method},
    )


def _commitment_params(commitment: ConfirmationStatus | None) -> list[Any]:
    if commitment is None:
        return []
    return [{"commitment": str(commitment)}]


def _unwrap_response(method: str, response: dict[str, Any]) -> Any:
    """Return the ``result`` member, raising on error envelopes."""
    error = response.get("error")
    if error is not None:
        if not isinstance(error, dict):
            raise _malformed(method, f"error member is not an object: {error!r}")
        code = error.get("code")
        rpc_code = code if isinstance(code, int) else 0
        raise RpcResponseError(
            rpc_code,
            str(error.get("message", "unknown error")),
            error.get("data"),
        )
    if "result" not in response:
        raise _malformed(method, "neither result nor error present")
    return response["result"]


def _context_value(method: str, result: Any) -> tuple[Any, int | None]:
    """Split a ``{"context": {...}, "value": ...}`` result."""
    if not isinstance(result, dict) or "value" not in result:
        raise _malformed(method, "missing context/value wrapper")
    context = result.get("context")
    slot = context.get("slot") if isinstance(context, dict) else None
    return result["value"], slot


def _parse_signature_statuses(result: Any) -> list[StatusRecord | None]:
    """Parse a ``getSignatureStatuses`` result into per-signature slots.

    Handles:
        - null entries (signature unknown to the node)
        - entries with and without ``confirmationStatus``
        - failed transactions (``err`` non-null)
    """
    value, _ = _context_value("getSignatureStatuses", result)
    if not isinstance(value, list):
        raise _malformed("getSignatureStatuses", "value is not a list")
    return [None if entry is None else _parse_status_record(entry) for entry in value]


def _parse_status_record(entry: Any) -> StatusRecord:
    if not isinstance(entry, dict):
        raise _malformed("getSignatureStatuses", f"status entry is not an object: {entry!r}")

    confirmations = entry.get("confirmations")
    if confirmations is not None and (
        not isinstance(confirmations, int) or isinstance(confirmations, bool)
    ):
        raise _malformed("getSignatureStatuses", f"bad confirmations: {confirmations!r}")

    raw_status = entry.get("confirmationStatus")
    if raw_status is None:
        # Older nodes omit confirmationStatus
        status = derive_confirmation_status(confirmations)
    else:
        try:
            status = ConfirmationStatus(raw_status)
        except ValueError as e:
            raise _malformed(
                "getSignatureStatuses", f"unknown confirmationStatus {raw_status!r}"
            ) from e

    slot = entry.get("slot")
    return StatusRecord(
        confirmation_status=status,
        confirmations=confirmations,
        error=entry.get("err"),
        slot=slot if isinstance(slot, int) else None,
    )


def _parse_latest_blockhash(result: Any) -> LatestBlockhash:
    value, slot = _context_value("getLatestBlockhash", result)
    if not isinstance(value, dict):
        raise _malformed("getLatestBlockhash", "value is not an object")
    blockhash = value.get("blockhash")
    height = value.get("lastValidBlockHeight")
    if not isinstance(blockhash, str) or not isinstance(height, int):
        raise _malformed("getLatestBlockhash", "missing blockhash or lastValidBlockHeight")
    return LatestBlockhash(
        blockhash=blockhash,
        last_valid_block_height=height,
        slot=slot if isinstance(slot, int) else None,
    )
