"""
Ledger node JSON-RPC boundary.

    - ``LedgerClient`` — protocol the fetcher and tracker depend on.
    - ``JsonRpcClient`` — JSON-RPC implementation of LedgerClient.
    - ``JsonRpcTransport`` / ``HttpxTransport`` — injectable HTTP layer.
    - ``LatestBlockhash`` — result type of ``get_latest_blockhash``.
"""

from ledger_confirm.rpc.client import LatestBlockhash, LedgerClient
from ledger_confirm.rpc.jsonrpc_client import JsonRpcClient
from ledger_confirm.rpc.transport import HttpxTransport, JsonRpcTransport

__all__ = [
    "HttpxTransport",
    "JsonRpcClient",
    "JsonRpcTransport",
    "LatestBlockhash",
    "LedgerClient",
]
