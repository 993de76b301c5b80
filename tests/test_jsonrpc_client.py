"""
Tests for JsonRpcClient — canned JSON-RPC responses, no network.

Uses a FakeTransport that returns pre-built response dicts,
exercising the parsing logic in jsonrpc_client.py.

Test plan:
- Request envelope: jsonrpc version, unique ids, method and params
- getSignatureStatuses: null entries, processed/confirmed/finalized,
  err payload, missing confirmationStatus derived, unknown status rejected
- sendTransaction: base64 wire form, preflight options, returned
  signature validated
- getLatestBlockhash / getSlot: parsed, commitment forwarded
- Error envelopes raise RpcResponseError, missing result raises
  TransportError, transport exceptions propagate
"""

import base64
from typing import Any

import base58
import pytest

from ledger_confirm.errors import RpcResponseError, TransportError
from ledger_confirm.rpc.jsonrpc_client import JsonRpcClient
from ledger_confirm.status import ConfirmationStatus

# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------


class FakeTransport:
    """Returns canned JSON-RPC responses for testing."""

    def __init__(self, response: dict[str, Any]) -> None:
        self._response = response
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((url, payload))
        return self._response


class ErrorTransport:
    """Raises an exception on post_json to simulate transport failures."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        raise self._exc


# ---------------------------------------------------------------------------
# Canned responses
# ---------------------------------------------------------------------------

URL = "http://localhost:8899"
SIG_A = base58.b58encode(b"\x0a" * 64).decode()
SIG_B = base58.b58encode(b"\x0b" * 64).decode()


def _ok(result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": 1, "result": result}


STATUSES_MIXED = _ok(
    {
        "context": {"slot": 82},
        "value": [
            {
                "slot": 72,
                "confirmations": 10,
                "err": None,
                "status": {"Ok": None},
                "confirmationStatus": "confirmed",
            },
            None,
        ],
    }
)

STATUSES_FINALIZED = _ok(
    {
        "context": {"slot": 120},
        "value": [
            {
                "slot": 72,
                "confirmations": None,
                "err": None,
                "status": {"Ok": None},
                "confirmationStatus": "finalized",
            }
        ],
    }
)

STATUSES_FAILED = _ok(
    {
        "context": {"slot": 90},
        "value": [
            {
                "slot": 88,
                "confirmations": 0,
                "err": {"InstructionError": [0, {"Custom": 1}]},
                "status": {"Err": {"InstructionError": [0, {"Custom": 1}]}},
                "confirmationStatus": "processed",
            }
        ],
    }
)

STATUSES_NO_LEVEL = _ok(
    {
        "context": {"slot": 90},
        "value": [
            {"slot": 88, "confirmations": 4, "err": None},
            {"slot": 20, "confirmations": None, "err": None},
        ],
    }
)

STATUSES_UNKNOWN_LEVEL = _ok(
    {
        "context": {"slot": 90},
        "value": [{"slot": 88, "confirmations": 1, "err": None, "confirmationStatus": "rooted"}],
    }
)

BLOCKHASH = _ok(
    {
        "context": {"slot": 2792},
        "value": {
            "blockhash": "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N",
            "lastValidBlockHeight": 3090,
        },
    }
)

RPC_ERROR = {
    "jsonrpc": "2.0",
    "id": 1,
    "error": {
        "code": -32002,
        "message": "Transaction simulation failed: Blockhash not found",
        "data": {"logs": []},
    },
}


# ---------------------------------------------------------------------------
# Request envelope
# ---------------------------------------------------------------------------


class TestRequestEnvelope:
    @pytest.mark.asyncio
    async def test_envelope_fields(self) -> None:
        transport = FakeTransport(STATUSES_MIXED)
        client = JsonRpcClient(URL, transport)
        await client.get_signature_statuses([SIG_A, SIG_B])

        url, payload = transport.calls[0]
        assert url == URL
        assert payload["jsonrpc"] == "2.0"
        assert payload["method"] == "getSignatureStatuses"
        assert payload["params"] == [[SIG_A, SIG_B], {"searchTransactionHistory": False}]

    @pytest.mark.asyncio
    async def test_request_ids_are_unique(self) -> None:
        transport = FakeTransport(_ok(5))
        client = JsonRpcClient(URL, transport)
        await client.get_slot()
        await client.get_slot()
        first, second = (payload["id"] for _, payload in transport.calls)
        assert first != second

    def test_url_property(self) -> None:
        assert JsonRpcClient(URL, FakeTransport(_ok(0))).url == URL


# ---------------------------------------------------------------------------
# getSignatureStatuses
# ---------------------------------------------------------------------------


class TestSignatureStatuses:
    @pytest.mark.asyncio
    async def test_mixed_present_and_absent(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(STATUSES_MIXED))
        records = await client.get_signature_statuses([SIG_A, SIG_B])

        assert len(records) == 2
        first, second = records
        assert first is not None
        assert first.confirmation_status is ConfirmationStatus.CONFIRMED
        assert first.confirmations == 10
        assert first.slot == 72
        assert first.error is None
        assert second is None

    @pytest.mark.asyncio
    async def test_finalized_has_no_confirmations(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(STATUSES_FINALIZED))
        (record,) = await client.get_signature_statuses([SIG_A])
        assert record is not None
        assert record.confirmation_status is ConfirmationStatus.FINALIZED
        assert record.confirmations is None

    @pytest.mark.asyncio
    async def test_err_payload_kept(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(STATUSES_FAILED))
        (record,) = await client.get_signature_statuses([SIG_A])
        assert record is not None
        assert record.failed
        assert record.error == {"InstructionError": [0, {"Custom": 1}]}

    @pytest.mark.asyncio
    async def test_missing_confirmation_status_is_derived(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(STATUSES_NO_LEVEL))
        first, second = await client.get_signature_statuses([SIG_A, SIG_B])
        assert first is not None and second is not None
        assert first.confirmation_status is ConfirmationStatus.CONFIRMED
        assert second.confirmation_status is ConfirmationStatus.FINALIZED

    @pytest.mark.asyncio
    async def test_unknown_confirmation_status_rejected(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(STATUSES_UNKNOWN_LEVEL))
        with pytest.raises(TransportError) as exc_info:
            await client.get_signature_statuses([SIG_A])
        assert exc_info.value.error_code == "MALFORMED_RESPONSE"

    @pytest.mark.asyncio
    async def test_missing_value_wrapper_rejected(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(_ok([None])))
        with pytest.raises(TransportError, match="context/value"):
            await client.get_signature_statuses([SIG_A])

    @pytest.mark.asyncio
    async def test_bad_confirmations_rejected(self) -> None:
        response = _ok(
            {"context": {"slot": 1}, "value": [{"confirmations": "ten", "err": None}]}
        )
        client = JsonRpcClient(URL, FakeTransport(response))
        with pytest.raises(TransportError):
            await client.get_signature_statuses([SIG_A])


# ---------------------------------------------------------------------------
# sendTransaction
# ---------------------------------------------------------------------------


class TestSendTransaction:
    @pytest.mark.asyncio
    async def test_returns_signature(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(_ok(SIG_A)))
        assert await client.send_transaction(b"\x01\x02\x03") == SIG_A

    @pytest.mark.asyncio
    async def test_wire_form_is_base64(self) -> None:
        transport = FakeTransport(_ok(SIG_A))
        client = JsonRpcClient(URL, transport)
        await client.send_transaction(b"\x01\x02\x03")

        _, payload = transport.calls[0]
        assert payload["method"] == "sendTransaction"
        encoded, config = payload["params"]
        assert base64.b64decode(encoded) == b"\x01\x02\x03"
        assert config == {"encoding": "base64"}

    @pytest.mark.asyncio
    async def test_preflight_options(self) -> None:
        transport = FakeTransport(_ok(SIG_A))
        client = JsonRpcClient(
            URL,
            transport,
            skip_preflight=True,
            preflight_commitment=ConfirmationStatus.PROCESSED,
        )
        await client.send_transaction(b"\x00")
        _, config = transport.calls[0][1]["params"]
        assert config["skipPreflight"] is True
        assert config["preflightCommitment"] == "processed"

    @pytest.mark.asyncio
    async def test_malformed_signature_rejected(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(_ok("not-a-signature")))
        with pytest.raises(TransportError) as exc_info:
            await client.send_transaction(b"\x00")
        assert exc_info.value.error_code == "MALFORMED_RESPONSE"

    @pytest.mark.asyncio
    async def test_preflight_failure_raises_rpc_error(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(RPC_ERROR))
        with pytest.raises(RpcResponseError) as exc_info:
            await client.send_transaction(b"\x00")
        assert exc_info.value.code == -32002
        assert "Blockhash not found" in exc_info.value.rpc_message
        assert exc_info.value.data == {"logs": []}


# ---------------------------------------------------------------------------
# getLatestBlockhash / getSlot
# ---------------------------------------------------------------------------


class TestBlockhashAndSlot:
    @pytest.mark.asyncio
    async def test_latest_blockhash_parsed(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(BLOCKHASH))
        latest = await client.get_latest_blockhash()
        assert latest.blockhash == "EkSnNWid2cvwEVnVx9aBqawnmiCNiDgp3gUdkDPTKN1N"
        assert latest.last_valid_block_height == 3090
        assert latest.slot == 2792

    @pytest.mark.asyncio
    async def test_commitment_forwarded(self) -> None:
        transport = FakeTransport(BLOCKHASH)
        client = JsonRpcClient(URL, transport)
        await client.get_latest_blockhash(ConfirmationStatus.FINALIZED)
        assert transport.calls[0][1]["params"] == [{"commitment": "finalized"}]

    @pytest.mark.asyncio
    async def test_blockhash_missing_fields_rejected(self) -> None:
        response = _ok({"context": {"slot": 1}, "value": {"blockhash": "abc"}})
        client = JsonRpcClient(URL, FakeTransport(response))
        with pytest.raises(TransportError):
            await client.get_latest_blockhash()

    @pytest.mark.asyncio
    async def test_get_slot(self) -> None:
        transport = FakeTransport(_ok(1234))
        client = JsonRpcClient(URL, transport)
        assert await client.get_slot() == 1234
        assert transport.calls[0][1]["params"] == []

    @pytest.mark.asyncio
    async def test_get_slot_non_integer_rejected(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(_ok("1234")))
        with pytest.raises(TransportError):
            await client.get_slot()


# ---------------------------------------------------------------------------
# Envelope errors and transport failures
# ---------------------------------------------------------------------------


class TestEnvelopeErrors:
    @pytest.mark.asyncio
    async def test_rpc_error_is_transport_error(self) -> None:
        client = JsonRpcClient(URL, FakeTransport(RPC_ERROR))
        with pytest.raises(TransportError) as exc_info:
            await client.get_slot()
        assert exc_info.value.error_code == "RPC_ERROR"

    @pytest.mark.asyncio
    async def test_missing_result_rejected(self) -> None:
        client = JsonRpcClient(URL, FakeTransport({"jsonrpc": "2.0", "id": 1}))
        with pytest.raises(TransportError, match="neither result nor error"):
            await client.get_slot()

    @pytest.mark.asyncio
    async def test_transport_exception_propagates(self) -> None:
        exc = TransportError("boom", error_code="CONNECTION_FAILED")
        client = JsonRpcClient(URL, ErrorTransport(exc))
        with pytest.raises(TransportError) as exc_info:
            await client.get_signature_statuses([SIG_A])
        assert exc_info.value is exc
