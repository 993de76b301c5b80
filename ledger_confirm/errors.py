"""
Error taxonomy for ledger client operations.

Four failure families, kept distinct so callers can branch on them:

    - TransportError: the round-trip to the node failed (network, timeout,
      HTTP status, unparseable or malformed response envelope). The
      confirmation tracker retries these on its next poll.
    - ExecutionError: the node reports the transaction itself failed
      on-chain. Authoritative and terminal.
    - ProtocolViolation: an observation contradicts the documented
      confirmation lifecycle (level regression, finalized with a
      confirmation count).
    - ConfirmationTimeout: the attempt/deadline budget ran out while the
      signature was still undetermined. Not a rejection.

The tracker returns the last three as data inside TerminalOutcome; only
TransportError (from single calls) and ValueError (bad arguments) are
raised at callers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ledger_confirm.status import ConfirmationStatus


class LedgerClientError(Exception):
    """Base class for all ledger client errors.

    Attributes:
        error_code: Stable machine-readable category.
        details: Extra diagnostic fields (never secrets).
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: str = "UNKNOWN",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.details = details or {}


class TransportError(LedgerClientError):
    """The request/response round-trip to the node failed."""


class RpcResponseError(TransportError):
    """The node answered with a JSON-RPC error envelope.

    Attributes:
        code: JSON-RPC error code (e.g. -32602 invalid params).
        rpc_message: Message reported by the node.
        data: Optional ``error.data`` payload (preflight logs, etc.).
    """

    def __init__(self, code: int, rpc_message: str, data: Any = None) -> None:
        super().__init__(
            f"RPC error {code}: {rpc_message}",
            error_code="RPC_ERROR",
            details={"code": code, "message": rpc_message},
        )
        self.code = code
        self.rpc_message = rpc_message
        self.data = data


class ExecutionError(LedgerClientError):
    """The transaction landed but failed on-chain.

    Attributes:
        signature: Signature of the failed transaction.
        err: Raw error payload reported by the node.
    """

    def __init__(self, signature: str, err: Any) -> None:
        super().__init__(
            f"transaction {signature} failed: {err}",
            error_code="EXECUTION_ERROR",
            details={"signature": signature, "err": err},
        )
        self.signature = signature
        self.err = err


class ProtocolViolation(LedgerClientError):
    """An observation is inconsistent with the confirmation lifecycle.

    Attributes:
        signature: Signature whose observation was rejected.
        previous: Last accepted level (None if never observed).
        observed: Level carried by the rejected observation.
    """

    def __init__(
        self,
        signature: str,
        message: str,
        *,
        previous: ConfirmationStatus | None = None,
        observed: ConfirmationStatus | None = None,
    ) -> None:
        super().__init__(
            f"{signature}: {message}",
            error_code="PROTOCOL_VIOLATION",
            details={
                "signature": signature,
                "previous": str(previous) if previous is not None else None,
                "observed": str(observed) if observed is not None else None,
            },
        )
        self.signature = signature
        self.previous = previous
        self.observed = observed


class ConfirmationTimeout(LedgerClientError, TimeoutError):
    """Polling budget exhausted before the signature reached a terminal state.

    Attributes:
        signature: Signature still undetermined.
        attempts: Number of poll rounds performed.
        last_seen_status: Highest level observed (None = never seen).
    """

    def __init__(
        self,
        signature: str,
        attempts: int,
        last_seen_status: ConfirmationStatus | None = None,
    ) -> None:
        seen = str(last_seen_status) if last_seen_status is not None else "unknown"
        super().__init__(
            f"{signature} undetermined after {attempts} attempt(s), last seen: {seen}",
            error_code="TIMEOUT",
            details={"signature": signature, "attempts": attempts, "last_seen": seen},
        )
        self.signature = signature
        self.attempts = attempts
        self.last_seen_status = last_seen_status
