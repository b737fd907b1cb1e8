"""JSON-RPC transport to the relay: HTTP client and tx submission helpers."""

from .http import RpcClient  # noqa: F401
from .send import get_transaction_receipt, submit_raw, wait_for_receipt  # noqa: F401

__all__ = ["RpcClient", "submit_raw", "get_transaction_receipt", "wait_for_receipt"]
