"""
Transport protocol for ledger JSON-RPC calls.

Defines the seam where concrete HTTP implementations plug in. The
JSON-RPC client depends on this protocol, not on httpx directly, so the
transport can be swapped without editing client logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)

Every transport-level failure surfaces as TransportError with one of the
error codes TIMEOUT, CONNECTION_FAILED, HTTP_ERROR, INVALID_JSON.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from ledger_confirm.errors import TransportError

DEFAULT_TIMEOUT = 30.0


@runtime_checkable
class JsonRpcTransport(Protocol):
    """Async transport for JSON-RPC POST requests."""

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a JSON-RPC request and return the parsed response.

        Args:
            url: The JSON-RPC endpoint URL.
            payload: The JSON-RPC request body (jsonrpc, id, method, params).

        Returns:
            Parsed JSON response object.

        Raises:
            TransportError: On transport-level failures (connection
                refused, timeout, HTTP status >= 400, non-JSON body).
        """
        ...


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    Args:
        timeout: Request timeout in seconds.
        headers: Extra HTTP headers sent with every request.
        client: Optional shared AsyncClient. When given, the transport
            reuses it for every request and never closes it; otherwise a
            short-lived client is opened per request.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = headers or {}
        self._client = client

    @property
    def timeout(self) -> float:
        return self._timeout

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send JSON-RPC request via httpx."""
        try:
            if self._client is not None:
                response = await self._post(self._client, url, payload)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, url, payload)
        except httpx.TimeoutException as e:
            raise TransportError(
                f"request timed out after {self._timeout}s",
                error_code="TIMEOUT",
                details={"url": url, "timeout_s": self._timeout},
            ) from e
        except httpx.ConnectError as e:
            raise TransportError(
                f"failed to connect to {url}",
                error_code="CONNECTION_FAILED",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"HTTP error: {e}",
                error_code="HTTP_ERROR",
                details={"url": url, "error": str(e)},
            ) from e

        if response.status_code >= 400:
            raise TransportError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                error_code="HTTP_ERROR",
                details={
                    "url": url,
                    "status_code": response.status_code,
                    "reason": response.reason_phrase,
                },
            )

        try:
            result = response.json()
        except ValueError as e:
            raise TransportError(
                "response was not valid JSON",
                error_code="INVALID_JSON",
                details={
                    "url": url,
                    "status_code": response.status_code,
                    "body_preview": response.text[:200] if response.text else "",
                },
            ) from e

        if not isinstance(result, dict):
            raise TransportError(
                "response JSON was not an object",
                error_code="INVALID_JSON",
                details={"url": url, "type": type(result).__name__},
            )

        return result

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: dict[str, Any]
    ) -> httpx.Response:
        return await client.post(
            url,
            json=payload,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
                **self._headers,
            },
            timeout=self._timeout,
        )
