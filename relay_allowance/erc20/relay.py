# -*- coding: utf-8 -*-
"""
Token client that talks to a Hedera JSON-RPC relay.

Reads go through ``eth_call`` against ``latest``. Writes are legacy
transactions signed locally with the connected signer, submitted with
``eth_sendRawTransaction`` and awaited by polling for the receipt. A receipt
with status 0 raises TxError carrying the relay's revert reason; the relay's
own JSON-RPC errors surface as RpcError. Neither is retried or reinterpreted.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from ..accounts import AddressLike, Signer, normalize_address, to_checksum
from ..errors import TxError
from ..rpc.send import receipt_status, submit_raw, wait_for_receipt
from . import abi
from .client import Receipt

log = logging.getLogger(__name__)

DEFAULT_GAS_LIMIT = 1_000_000


def _revert_reason(receipt: Dict[str, Any]) -> Optional[str]:
    reason = receipt.get("revertReason")
    if not reason:
        return None
    if isinstance(reason, str) and reason.startswith("0x08c379a0"):
        # Error(string)
        try:
            (msg,) = decode(["string"], bytes.fromhex(reason[10:]))
        except (DecodingError, ValueError):
            return reason
        return msg
    return str(reason)


def transact(
    rpc: Any,
    signer: Signer,
    to: AddressLike,
    data: bytes,
    *,
    chain_id: int,
    value: int = 0,
    gas_limit: int = DEFAULT_GAS_LIMIT,
    timeout_s: float = 60.0,
    poll_interval_s: float = 0.5,
) -> Dict[str, Any]:
    """
    Sign, submit and await one transaction. Returns the receipt on status 1.
    """
    nonce = int(rpc.call("eth_getTransactionCount", [signer.address, "pending"]), 16)
    gas_price = int(rpc.call("eth_gasPrice"), 16)
    tx = {
        "to": to_checksum_address(normalize_address(to)),
        "data": "0x" + bytes(data).hex(),
        "value": int(value),
        "gas": int(gas_limit),
        "gasPrice": gas_price,
        "nonce": nonce,
        "chainId": int(chain_id),
    }
    raw = signer.sign_transaction(tx)
    tx_hash = submit_raw(rpc, raw)
    log.debug("submitted %s from %s nonce=%d", tx_hash, signer.address, nonce)

    receipt = wait_for_receipt(rpc, tx_hash, timeout_s=timeout_s, poll_interval_s=poll_interval_s)
    status = receipt_status(receipt)
    if status != 1:
        raise TxError(
            "transaction reverted",
            tx_hash=tx_hash,
            status=status,
            revert_reason=_revert_reason(receipt),
            receipt=receipt,
        )
    return receipt


class RelayTokenClient:
    def __init__(
        self,
        rpc: Any,
        token_address: AddressLike,
        signer: Signer,
        *,
        chain_id: int,
        gas_limit: int = DEFAULT_GAS_LIMIT,
        receipt_timeout_s: float = 60.0,
        poll_interval_s: float = 0.5,
    ) -> None:
        self.rpc = rpc
        self._token = normalize_address(token_address)
        self.signer = signer
        self.chain_id = int(chain_id)
        self.gas_limit = int(gas_limit)
        self.receipt_timeout_s = receipt_timeout_s
        self.poll_interval_s = poll_interval_s

    @property
    def address(self) -> str:
        return self.signer.address

    @property
    def token_address(self) -> str:
        return to_checksum(self._token)

    def connect(self, signer: Signer) -> "RelayTokenClient":
        return RelayTokenClient(
            self.rpc,
            self._token,
            signer,
            chain_id=self.chain_id,
            gas_limit=self.gas_limit,
            receipt_timeout_s=self.receipt_timeout_s,
            poll_interval_s=self.poll_interval_s,
        )

    # --- views -----------------------------------------------------------

    def _read(self, fn: str, *args: Any) -> Any:
        data = abi.encode_call(fn, *args)
        result = self.rpc.call(
            "eth_call",
            [{"to": self.token_address, "data": "0x" + data.hex()}, "latest"],
        )
        return abi.decode_result(fn, result)

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return int(self._read("allowance", owner, spender))

    def balance_of(self, account: AddressLike) -> int:
        return int(self._read("balanceOf", account))

    def total_supply(self) -> int:
        return int(self._read("totalSupply"))

    def decimals(self) -> int:
        return int(self._read("decimals"))

    # --- mutations -------------------------------------------------------

    def _write(self, fn: str, *args: Any) -> Receipt:
        receipt = transact(
            self.rpc,
            self.signer,
            self._token,
            abi.encode_call(fn, *args),
            chain_id=self.chain_id,
            gas_limit=self.gas_limit,
            timeout_s=self.receipt_timeout_s,
            poll_interval_s=self.poll_interval_s,
        )
        return Receipt(
            tx_hash=str(receipt.get("transactionHash")),
            status=receipt_status(receipt),
            events=abi.decode_logs(receipt.get("logs") or []),
            raw=receipt,
        )

    def approve(self, spender: AddressLike, amount: int) -> Receipt:
        return self._write("approve", spender, amount)

    def transfer(self, to: AddressLike, amount: int) -> Receipt:
        return self._write("transfer", to, amount)

    def transfer_from(self, owner: AddressLike, to: AddressLike, amount: int) -> Receipt:
        return self._write("transferFrom", owner, to, amount)

    def associate(self) -> Receipt:
        """HRC-719: the signer associates itself with this token."""
        return self._write("associate")


__all__ = ["DEFAULT_GAS_LIMIT", "RelayTokenClient", "transact"]
