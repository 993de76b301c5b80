"""
Confirmation tracker — turns repeated status polls into a terminal outcome.

Per-signature state machine:

    Unknown -> processed -> confirmed -> finalized      (success)
        \\__________\\____________\\____> Failed         (execution error)

Rules for each observation, in order:
    1. absent -> no-op (Unknown stays Unknown, a seen level is kept;
       a gap after an observation is not a regression)
    2. error present -> Failed, whatever the level
    3. finalized with a confirmation count -> ProtocolViolation
    4. level below the last seen one -> ProtocolViolation
    5. otherwise move to the level; finalized ends the session

The polling loop owns every state machine it creates; sessions share
nothing but the client. Between rounds it awaits ``sleep``, which is
where cooperative cancellation lands. No background tasks.

Two caller shapes:
    - ``confirm_transaction()`` — boolean "reached the commitment level".
    - ``track_until_finalized()`` — TerminalOutcome per signature.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import NoReturn

from ledger_confirm.config import TrackerConfig
from ledger_confirm.errors import (
    ConfirmationTimeout,
    ExecutionError,
    LedgerClientError,
    ProtocolViolation,
    TransportError,
)
from ledger_confirm.fetcher import StatusFetcher
from ledger_confirm.log import get_logger
from ledger_confirm.rpc.client import LedgerClient
from ledger_confirm.status import (
    ConfirmationStatus,
    Signature,
    StatusRecord,
    is_valid_signature,
)

logger = get_logger(__name__)


# =========================================================================
# State
# =========================================================================


class TrackingOutcome(StrEnum):
    """Running outcome of a tracking session."""

    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OutcomeKind(StrEnum):
    """How a tracking session ended."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    PROTOCOL_VIOLATION = "protocol_violation"
    TIMEOUT = "timeout"


@dataclass
class TrackedState:
    """Mutable per-signature state, owned by one state machine.

    Attributes:
        signature: Signature being tracked.
        last_seen_status: Highest level observed. None means Unknown.
        outcome: pending until a terminal observation arrives.
        visited: States entered so far, starting with Unknown (None).
        error: ExecutionError or ProtocolViolation that ended the session.
    """

    signature: Signature
    last_seen_status: ConfirmationStatus | None = None
    outcome: TrackingOutcome = TrackingOutcome.PENDING
    visited: list[ConfirmationStatus | None] = field(default_factory=lambda: [None])
    error: LedgerClientError | None = None

    @property
    def terminal(self) -> bool:
        return self.outcome is not TrackingOutcome.PENDING


@dataclass(frozen=True)
class TransitionEvent:
    """A state change reported to the observer.

    ``previous``/``current`` are levels (None = Unknown). A failure keeps
    the level and changes ``outcome``.
    """

    signature: Signature
    previous: ConfirmationStatus | None
    current: ConfirmationStatus | None
    outcome: TrackingOutcome
    attempt: int


Observer = Callable[[TransitionEvent], None]


@dataclass(frozen=True)
class TerminalOutcome:
    """Final result of tracking one signature.

    Attributes:
        signature: Signature tracked.
        kind: succeeded, failed, protocol_violation or timeout.
        last_seen_status: Highest accepted level (None = never seen).
        error: ExecutionError, ProtocolViolation or ConfirmationTimeout;
            None on success.
        attempts: Poll rounds performed when the outcome was decided.
    """

    signature: Signature
    kind: OutcomeKind
    last_seen_status: ConfirmationStatus | None = None
    error: LedgerClientError | None = None
    attempts: int = 0

    @property
    def succeeded(self) -> bool:
        return self.kind is OutcomeKind.SUCCEEDED


# =========================================================================
# State machine
# =========================================================================


class ConfirmationStateMachine:
    """Monotonic confirmation lifecycle for a single signature."""

    def __init__(self, signature: Signature, observer: Observer | None = None) -> None:
        self._state = TrackedState(signature=signature)
        self._observer = observer

    @property
    def state(self) -> TrackedState:
        return self._state

    def observe(self, record: StatusRecord | None, *, attempt: int = 0) -> TrackedState:
        """Apply one poll observation and return the updated state.

        Raises:
            ProtocolViolation: If the observation regresses the level or is
                malformed. The session is marked failed before raising.
            RuntimeError: If the session already ended.
        """
        state = self._state
        if state.terminal:
            raise RuntimeError(f"tracking for {state.signature} already ended: {state.outcome}")

        if record is None:
            return state

        previous = state.last_seen_status
        observed = record.confirmation_status

        if record.failed:
            state.outcome = TrackingOutcome.FAILED
            state.error = ExecutionError(state.signature, record.error)
            self._notify(previous, previous, attempt)
            return state

        if observed is ConfirmationStatus.FINALIZED and record.confirmations is not None:
            self._violate(
                f"finalized status carries confirmations={record.confirmations}",
                previous,
                observed,
                attempt,
            )

        if previous is not None and observed.rank < previous.rank:
            self._violate(
                f"confirmation status regressed from {previous} to {observed}",
                previous,
                observed,
                attempt,
            )

        if observed is not previous:
            state.last_seen_status = observed
            state.visited.append(observed)
        if observed is ConfirmationStatus.FINALIZED:
            state.outcome = TrackingOutcome.SUCCEEDED
        if observed is not previous or state.terminal:
            self._notify(previous, observed, attempt)
        return state

    def _violate(
        self,
        message: str,
        previous: ConfirmationStatus | None,
        observed: ConfirmationStatus,
        attempt: int,
    ) -> NoReturn:
        violation = ProtocolViolation(
            self._state.signature, message, previous=previous, observed=observed
        )
        self._state.outcome = TrackingOutcome.FAILED
        self._state.error = violation
        self._notify(previous, previous, attempt)
        raise violation

    def _notify(
        self,
        previous: ConfirmationStatus | None,
        current: ConfirmationStatus | None,
        attempt: int,
    ) -> None:
        if self._observer is None:
            return
        self._observer(
            TransitionEvent(
                signature=self._state.signature,
                previous=previous,
                current=current,
                outcome=self._state.outcome,
                attempt=attempt,
            )
        )


# =========================================================================
# Polling loop
# =========================================================================


class ConfirmationTracker:
    """Drives status polling for one or more signatures.

    Args:
        client: Ledger client used for status queries and submission.
        config: Poll cadence and budgets. Defaults to TrackerConfig().
        observer: Called with every TransitionEvent. Exceptions raised
            by the observer propagate to the caller.
        sleep: Awaitable delay between poll rounds. Inject for tests.
        clock: Monotonic seconds, used for the wall-clock deadline.
    """

    def __init__(
        self,
        client: LedgerClient,
        config: TrackerConfig | None = None,
        *,
        observer: Observer | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._fetcher = StatusFetcher(client)
        self._config = config or TrackerConfig()
        self._observer = observer
        self._sleep = sleep
        self._clock = clock

    @property
    def config(self) -> TrackerConfig:
        return self._config

    async def confirm_transaction(
        self,
        signature: Signature,
        commitment: ConfirmationStatus | None = None,
        *,
        max_attempts: int | None = None,
        poll_interval: float | None = None,
    ) -> bool:
        """Poll until ``signature`` reaches ``commitment`` or attempts run out.

        Returns True once the signature is observed at ``commitment`` or
        above without an error. Execution errors, protocol violations and
        an exhausted budget all return False. ``max_attempts=1`` is a
        single-shot check.

        Raises:
            ValueError: If ``signature`` is not a 64-byte base58 signature
                or a budget is invalid.
        """
        commitment = commitment or self._config.commitment
        attempts = max_attempts if max_attempts is not None else self._config.max_attempts
        interval = poll_interval if poll_interval is not None else self._config.poll_interval
        _check_signatures([signature])
        _check_budget(attempts, None, interval)

        machine = ConfirmationStateMachine(signature, self._observer)
        for attempt in range(1, attempts + 1):
            try:
                (record,) = await self._fetcher.fetch([signature])
            except TransportError as exc:
                logger.warning(
                    "status_poll_failed",
                    signature=signature,
                    attempt=attempt,
                    error_code=exc.error_code,
                    error=str(exc),
                )
            else:
                try:
                    state = machine.observe(record, attempt=attempt)
                except ProtocolViolation as exc:
                    logger.warning("protocol_violation", signature=signature, error=str(exc))
                    return False
                if state.outcome is TrackingOutcome.FAILED:
                    logger.info("transaction_failed", signature=signature, error=str(state.error))
                    return False
                if state.last_seen_status is not None and state.last_seen_status.at_least(
                    commitment
                ):
                    return True
            if attempt < attempts:
                await self._sleep(interval)

        logger.info(
            "confirm_timed_out",
            signature=signature,
            attempts=attempts,
            commitment=str(commitment),
        )
        return False

    async def track_until_finalized(
        self,
        signatures: Sequence[Signature],
        poll_interval: float | None = None,
        *,
        max_attempts: int | None = None,
        timeout: float | None = None,
    ) -> dict[Signature, TerminalOutcome]:
        """Poll until every signature is finalized, failed, or out of budget.

        All still-pending signatures share one batched status query per
        round; each progresses through its own state machine. When neither
        ``max_attempts`` nor ``timeout`` is given, the config's budgets
        apply.

        Returns:
            Mapping from signature to TerminalOutcome, in input order
            (duplicates collapse to one entry).

        Raises:
            TypeError: If ``signatures`` is a single string.
            ValueError: If ``signatures`` is empty, holds a malformed
                signature, or a budget is invalid.
        """
        if isinstance(signatures, str):
            raise TypeError("signatures must be a sequence, not a single string")
        if not signatures:
            raise ValueError("signatures must be non-empty")
        _check_signatures(signatures)
        if max_attempts is None and timeout is None:
            max_attempts = self._config.max_attempts
            timeout = self._config.confirm_timeout
        interval = poll_interval if poll_interval is not None else self._config.poll_interval
        _check_budget(max_attempts, timeout, interval)

        unique = list(dict.fromkeys(signatures))
        machines = {sig: ConfirmationStateMachine(sig, self._observer) for sig in unique}
        outcomes: dict[Signature, TerminalOutcome] = {}
        deadline = self._clock() + timeout if timeout is not None else None
        last_transport_error: TransportError | None = None
        attempt = 0

        while True:
            attempt += 1
            pending = [sig for sig in unique if sig not in outcomes]
            try:
                records = await self._fetcher.fetch(pending)
            except TransportError as exc:
                last_transport_error = exc
                logger.warning(
                    "status_poll_failed",
                    signatures=len(pending),
                    attempt=attempt,
                    error_code=exc.error_code,
                    error=str(exc),
                )
            else:
                last_transport_error = None
                for sig, record in zip(pending, records):
                    outcome = _advance(machines[sig], record, attempt)
                    if outcome is not None:
                        outcomes[sig] = outcome
                        logger.info(
                            "tracking_finished",
                            signature=sig,
                            outcome=str(outcome.kind),
                            attempts=attempt,
                        )

            if len(outcomes) == len(unique):
                break
            if max_attempts is not None and attempt >= max_attempts:
                break
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    break
                await self._sleep(min(interval, remaining))
            else:
                await self._sleep(interval)

        for sig in unique:
            if sig in outcomes:
                continue
            state = machines[sig].state
            timeout_error = ConfirmationTimeout(sig, attempt, state.last_seen_status)
            timeout_error.__cause__ = last_transport_error
            outcomes[sig] = TerminalOutcome(
                signature=sig,
                kind=OutcomeKind.TIMEOUT,
                last_seen_status=state.last_seen_status,
                error=timeout_error,
                attempts=attempt,
            )
            logger.info(
                "tracking_finished",
                signature=sig,
                outcome=str(OutcomeKind.TIMEOUT),
                attempts=attempt,
                last_seen=str(state.last_seen_status),
            )

        return {sig: outcomes[sig] for sig in unique}

    async def send_and_track(
        self,
        transaction: bytes,
        poll_interval: float | None = None,
        *,
        max_attempts: int | None = None,
        timeout: float | None = None,
    ) -> tuple[Signature, TerminalOutcome]:
        """Submit a signed transaction, then track it to a terminal outcome.

        Raises:
            TransportError: If submission fails. Nothing is tracked then.
        """
        signature = await self._client.send_transaction(transaction)
        logger.info("transaction_sent", signature=signature)
        outcomes = await self.track_until_finalized(
            [signature],
            poll_interval,
            max_attempts=max_attempts,
            timeout=timeout,
        )
        return signature, outcomes[signature]


def _advance(
    machine: ConfirmationStateMachine,
    record: StatusRecord | None,
    attempt: int,
) -> TerminalOutcome | None:
    """Feed one record; return a TerminalOutcome if the session ended."""
    try:
        state = machine.observe(record, attempt=attempt)
    except ProtocolViolation as exc:
        logger.warning("protocol_violation", signature=exc.signature, error=str(exc))
        return TerminalOutcome(
            signature=machine.state.signature,
            kind=OutcomeKind.PROTOCOL_VIOLATION,
            last_seen_status=machine.state.last_seen_status,
            error=exc,
            attempts=attempt,
        )
    if state.outcome is TrackingOutcome.SUCCEEDED:
        kind = OutcomeKind.SUCCEEDED
    elif state.outcome is TrackingOutcome.FAILED:
        kind = OutcomeKind.FAILED
    else:
        return None
    return TerminalOutcome(
        signature=state.signature,
        kind=kind,
        last_seen_status=state.last_seen_status,
        error=state.error,
        attempts=attempt,
    )


def _check_budget(max_attempts: int | None, timeout: float | None, interval: float) -> None:
    if max_attempts is not None and max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got: {max_attempts}")
    if timeout is not None and timeout <= 0:
        raise ValueError(f"timeout must be > 0, got: {timeout}")
    if interval < 0:
        raise ValueError(f"poll_interval must be >= 0, got: {interval}")


def _check_signatures(signatures: Sequence[Signature]) -> None:
    # A node rejects the whole batched query over one malformed entry.
    for sig in signatures:
        if not is_valid_signature(sig):
            raise ValueError(f"not a valid transaction signature: {sig!r}")
