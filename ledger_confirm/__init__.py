"""
ledger-confirm: submit ledger transactions and track them to finality.

Public API:

    Data model:
        - ``ConfirmationStatus`` — processed < confirmed < finalized.
        - ``StatusRecord`` — one poll's observation of a signature.
        - ``Signature`` — base58 transaction signature (str).

    Status Fetcher:
        - ``StatusFetcher`` — one batched, order-preserving status query.

    Confirmation Tracker:
        - ``ConfirmationTracker`` — ``confirm_transaction()`` (bool),
          ``track_until_finalized()`` (TerminalOutcome per signature),
          ``send_and_track()``.
        - ``ConfirmationStateMachine``, ``TrackedState``, ``TransitionEvent``,
          ``TerminalOutcome``, ``OutcomeKind``, ``TrackingOutcome``.

    Network boundary:
        - ``LedgerClient`` protocol, ``JsonRpcClient``, ``HttpxTransport``.

    Errors:
        - ``TransportError``, ``RpcResponseError``, ``ExecutionError``,
          ``ProtocolViolation``, ``ConfirmationTimeout``.

    Config / logging:
        - ``TrackerConfig``, ``configure_logging``.
"""

from ledger_confirm.config import TrackerConfig
from ledger_confirm.errors import (
    ConfirmationTimeout,
    ExecutionError,
    LedgerClientError,
    ProtocolViolation,
    RpcResponseError,
    TransportError,
)
from ledger_confirm.fetcher import StatusFetcher
from ledger_confirm.log import configure_logging
from ledger_confirm.rpc import (
    HttpxTransport,
    JsonRpcClient,
    JsonRpcTransport,
    LatestBlockhash,
    LedgerClient,
)
from ledger_confirm.status import (
    ConfirmationStatus,
    Signature,
    StatusRecord,
    is_valid_signature,
)
from ledger_confirm.tracker import (
    ConfirmationStateMachine,
    ConfirmationTracker,
    OutcomeKind,
    TerminalOutcome,
    TrackedState,
    TrackingOutcome,
    TransitionEvent,
)

__version__ = "0.1.0"

__all__ = [
    "ConfirmationStateMachine",
    "ConfirmationStatus",
    "ConfirmationTimeout",
    "ConfirmationTracker",
    "ExecutionError",
    "HttpxTransport",
    "JsonRpcClient",
    "JsonRpcTransport",
    "LatestBlockhash",
    "LedgerClient",
    "LedgerClientError",
    "OutcomeKind",
    "ProtocolViolation",
    "RpcResponseError",
    "Signature",
    "StatusFetcher",
    "StatusRecord",
    "TerminalOutcome",
    "TrackedState",
    "TrackerConfig",
    "TrackingOutcome",
    "TransitionEvent",
    "TransportError",
    "configure_logging",
    "is_valid_signature",
]
