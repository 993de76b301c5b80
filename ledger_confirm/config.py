"""
Tracker configuration, with optional loading from the environment.

Environment variables (a ``.env`` file in the working directory is loaded
first when present):

    - LEDGER_RPC_URL: JSON-RPC endpoint (default: public devnet)
    - LEDGER_REQUEST_TIMEOUT_SEC: per-request HTTP timeout
    - LEDGER_POLL_INTERVAL_SEC: delay between status poll rounds
    - LEDGER_MAX_ATTEMPTS: poll rounds before giving up
    - LEDGER_CONFIRM_TIMEOUT_SEC: wall-clock budget for full tracking
      (0 disables the deadline; the attempt budget still applies)
    - LEDGER_COMMITMENT: default level for blocking confirmation
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from ledger_confirm.status import ConfirmationStatus

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"

DEFAULT_REQUEST_TIMEOUT_SEC = 30.0
DEFAULT_POLL_INTERVAL_SEC = 0.5
DEFAULT_MAX_ATTEMPTS = 120
DEFAULT_CONFIRM_TIMEOUT_SEC = 90.0


@dataclass(frozen=True)
class TrackerConfig:
    """Settings for the JSON-RPC client and the confirmation tracker.

    Attributes:
        rpc_url: Node JSON-RPC endpoint.
        request_timeout: Per-request HTTP timeout in seconds.
        poll_interval: Seconds between poll rounds.
        max_attempts: Poll rounds before a timeout outcome.
        confirm_timeout: Wall-clock budget in seconds for a tracking
            session. None means attempts alone bound the session.
        commitment: Default level for ``confirm_transaction``.
    """

    rpc_url: str = DEVNET_RPC_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC
    poll_interval: float = DEFAULT_POLL_INTERVAL_SEC
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    confirm_timeout: float | None = DEFAULT_CONFIRM_TIMEOUT_SEC
    commitment: ConfirmationStatus = ConfirmationStatus.CONFIRMED

    def __post_init__(self) -> None:
        if not self.rpc_url:
            raise ValueError("rpc_url must be non-empty")
        if self.request_timeout <= 0:
            raise ValueError(f"request_timeout must be > 0, got: {self.request_timeout}")
        if self.poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got: {self.poll_interval}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got: {self.max_attempts}")
        if self.confirm_timeout is not None and self.confirm_timeout <= 0:
            raise ValueError(
                f"confirm_timeout must be > 0 or None, got: {self.confirm_timeout}"
            )

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        load_dotenv_file: bool = True,
    ) -> TrackerConfig:
        """Build a config from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (tests).
            load_dotenv_file: Load ``.env`` into ``os.environ`` first.
                Ignored when ``environ`` is given.

        Raises:
            ValueError: If a variable is present but invalid.
        """
        if environ is None:
            if load_dotenv_file:
                load_dotenv()
            environ = os.environ

        timeout = _float(environ, "LEDGER_CONFIRM_TIMEOUT_SEC", DEFAULT_CONFIRM_TIMEOUT_SEC)
        raw_commitment = (environ.get("LEDGER_COMMITMENT") or "").strip().lower()
        try:
            commitment = (
                ConfirmationStatus(raw_commitment)
                if raw_commitment
                else ConfirmationStatus.CONFIRMED
            )
        except ValueError as e:
            raise ValueError(f"LEDGER_COMMITMENT is not a commitment level: {raw_commitment!r}") from e

        return cls(
            rpc_url=(environ.get("LEDGER_RPC_URL") or "").strip() or DEVNET_RPC_URL,
            request_timeout=_float(
                environ, "LEDGER_REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC
            ),
            poll_interval=_float(environ, "LEDGER_POLL_INTERVAL_SEC", DEFAULT_POLL_INTERVAL_SEC),
            max_attempts=_int(environ, "LEDGER_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
            confirm_timeout=timeout if timeout > 0 else None,
            commitment=commitment,
        )


def _float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from e


def _int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from e
