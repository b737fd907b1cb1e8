"""
relay_allowance.rpc.send
========================

Submit raw signed Ethereum transactions to the relay and await receipts.

- submit_raw(rpc, raw_tx) -> str
    ``eth_sendRawTransaction``; returns the 0x-prefixed tx hash.
- get_transaction_receipt(rpc, tx_hash) -> dict | None
- wait_for_receipt(rpc, tx_hash, *, timeout_s=60, poll_interval_s=0.5) -> dict
    Polls until a receipt is available or the deadline passes.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional, Protocol

from ..errors import TxError

log = logging.getLogger(__name__)


class _RpcClient(Protocol):
    def call(self, method: str, params: Any = None) -> Any: ...


def submit_raw(rpc: _RpcClient, raw_tx: bytes) -> str:
    if not isinstance(raw_tx, (bytes, bytearray)):
        raise TypeError("raw_tx must be bytes")
    result = rpc.call("eth_sendRawTransaction", ["0x" + bytes(raw_tx).hex()])
    if not isinstance(result, str):
        raise TxError(f"unexpected result for eth_sendRawTransaction: {result!r}")
    return result if result.startswith("0x") else "0x" + result


def get_transaction_receipt(rpc: _RpcClient, tx_hash: str) -> Optional[Dict[str, Any]]:
    """
    Returns the receipt dict, or None while the transaction is pending.
    """
    res = rpc.call("eth_getTransactionReceipt", [tx_hash])
    if res in (None, False, ""):
        return None
    if not isinstance(res, dict):
        raise TxError(f"unexpected receipt payload: {type(res)!r}", tx_hash=tx_hash)
    return res


def receipt_status(receipt: Dict[str, Any]) -> int:
    status = receipt.get("status")
    if isinstance(status, str):
        return int(status, 16) if status.startswith("0x") else int(status)
    return int(status or 0)


def wait_for_receipt(
    rpc: _RpcClient,
    tx_hash: str,
    *,
    timeout_s: float = 60.0,
    poll_interval_s: float = 0.5,
    max_interval_s: float = 2.5,
    backoff: float = 1.25,
) -> Dict[str, Any]:
    """
    Poll for a receipt until it arrives or timeout is reached.

    Raises:
        TimeoutError on timeout
        RpcError / TxError on RPC or data-shape errors
    """
    deadline = time.monotonic() + float(timeout_s)
    interval = float(poll_interval_s)

    while True:
        rec = get_transaction_receipt(rpc, tx_hash)
        if rec is not None:
            log.debug("receipt %s status=%s", tx_hash, rec.get("status"))
            return rec

        if time.monotonic() >= deadline:
            raise TimeoutError(f"timeout waiting for receipt (tx={tx_hash}, timeout_s={timeout_s})")

        time.sleep(interval)
        interval = min(interval * float(backoff), float(max_interval_s))


__all__ = ["submit_raw", "get_transaction_receipt", "receipt_status", "wait_for_receipt"]
