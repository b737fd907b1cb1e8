from __future__ import annotations

"""
HTTP JSON-RPC client (sync) for the relay.

- httpx transport, JSON-RPC 2.0 framing.
- Retries on transient transport failures and HTTP 429/502/503/504 only.
- JSON-RPC error objects are raised as RpcError immediately and verbatim.

Example:
    from relay_allowance.rpc import RpcClient
    with RpcClient("http://localhost:7546") as rpc:
        print(int(rpc.call("eth_chainId"), 16))
"""

import json
import logging
import random
import time
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Union

import httpx

from ..errors import JsonRpcCode, RpcError
from ..version import user_agent

log = logging.getLogger(__name__)

JSON = Union[dict, list, str, int, float, bool, None]
Params = Union[Sequence[Any], Mapping[str, Any], None]


def _is_retriable_http(status: int) -> bool:
    # Typical transient HTTP statuses: 429/502/503/504
    return status in (429, 502, 503, 504)


def _jitter_backoff(base: float, factor: float, attempt: int, jitter: float) -> float:
    # Exponential backoff with jitter in [0, jitter]
    return base * (factor ** max(attempt - 1, 0)) + random.random() * jitter


class _Transient(Exception):
    pass


@dataclass
class RpcClient:
    """Synchronous JSON-RPC 2.0 client over HTTP."""

    url: str
    timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.15
    backoff_factor: float = 1.8
    backoff_jitter: float = 0.2
    headers: Optional[Mapping[str, str]] = None
    transport: Optional[httpx.BaseTransport] = None
    _ids: Iterator[int] = field(default_factory=lambda: count(1))
    _client: httpx.Client = field(init=False, repr=False)

    def __post_init__(self) -> None:
        merged_headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": user_agent(),
        }
        if self.headers:
            merged_headers.update(dict(self.headers))
        self._client = httpx.Client(
            timeout=self.timeout,
            headers=merged_headers,
            transport=self.transport,
        )

    # --- context manager -------------------------------------------------

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        self._client.close()

    # --- public API ------------------------------------------------------

    def call(self, method: str, params: Params = None) -> JSON:
        """Perform a single JSON-RPC request and return `result` or raise RpcError."""
        payload = self._make_payload(method, params)
        return self._send_with_retries(method, payload)

    request = call

    # --- internals -------------------------------------------------------

    def _make_payload(self, method: str, params: Params) -> Dict[str, Any]:
        if params is None:
            params = []
        elif isinstance(params, Mapping):
            params = dict(params)
        elif isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray)):
            params = list(params)
        else:
            params = [params]
        return {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

    def _send_with_retries(self, method: str, payload: Dict[str, Any]) -> JSON:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 2):  # N retries -> N+1 attempts
            try:
                return self._send_once(method, payload)
            except _Transient as e:
                last_exc = e
                if attempt > self.max_retries:
                    break
                delay = _jitter_backoff(self.backoff_base, self.backoff_factor, attempt, self.backoff_jitter)
                log.warning("rpc %s transient failure (%s); retry %d in %.2fs", method, e, attempt, delay)
                time.sleep(delay)
        raise RpcError(
            code=JsonRpcCode.TRANSPORT_ERROR,
            message="RPC transport failed",
            data=str(last_exc),
            method=method,
        )

    def _send_once(self, method: str, payload: Dict[str, Any]) -> JSON:
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        log.debug("rpc -> %s %s", method, body)
        try:
            r = self._client.post(self.url, content=body)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise _Transient(str(e)) from e
        if _is_retriable_http(r.status_code):
            raise _Transient(f"HTTP {r.status_code}")
        # Avoid raise_for_status() to keep the error body visible below
        try:
            resp = r.json()
        except ValueError as e:
            raise RpcError(
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Non-JSON response from RPC",
                data=f"HTTP {r.status_code}: {r.text[:256]}",
                method=method,
                http_status=r.status_code,
            ) from e

        if not isinstance(resp, dict):
            raise RpcError(
                code=JsonRpcCode.INTERNAL_ERROR,
                message="Invalid JSON-RPC response type",
                data=type(resp).__name__,
                method=method,
            )
        if resp.get("error") is not None:
            err = resp["error"]
            raise RpcError(
                code=int(err.get("code", JsonRpcCode.SERVER_ERROR)),
                message=str(err.get("message", "Unknown error")),
                data=err.get("data"),
                method=method,
                http_status=r.status_code,
            )
        if "result" not in resp:
            raise RpcError(
                code=JsonRpcCode.INTERNAL_ERROR, message="Malformed JSON-RPC response", data=resp, method=method
            )
        log.debug("rpc <- %s %r", method, resp["result"])
        return resp["result"]


__all__ = ["RpcClient"]
