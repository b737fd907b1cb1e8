# -*- coding: utf-8 -*-
"""
relay_allowance.tests.conftest
==============================

Pytest fixtures for the ledger, the token clients and the scenario.

Goals:
- Provide **deterministic addresses** (SHA3-derived) for ledger-level tests.
- Expose **signers** for the three scenario roles using the public
  hedera-local-node dev keys, so relay-path tests sign real transactions.
- Offer a **FakeRelay**: an in-memory stand-in for the JSON-RPC relay that
  decodes signed legacy transactions, recovers the sender, executes
  ERC-20/HRC-719/HTS calls against TokenLedger instances and serves receipts
  with logs and revert reasons shaped the way the relay reports them.

This harness is intentionally tiny. It is NOT a relay; it mirrors only the
methods our clients actually call.
"""
from __future__ import annotations

import hashlib
from typing import Any, Dict, List, Optional, Tuple

import pytest
import rlp
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector, keccak

from relay_allowance.accounts import AccountId, Signer, normalize_address
from relay_allowance.config import LOCAL_NODE_ACCOUNTS, HarnessConfig, load_config
from relay_allowance.erc20 import AssociationRegistry, abi
from relay_allowance.errors import JsonRpcCode, RelayAllowanceError, RpcError
from relay_allowance.ledger import INT64_MAX, TokenLedger
from relay_allowance.provisioning import CREATE_FUNGIBLE_SIG, HTS_ADDRESS, HTS_SUCCESS, _HEDERA_TOKEN

# --- tiny deterministic helpers ----------------------------------------------


def _det_address(tag: str) -> bytes:
    """
    Produce a stable 20-byte address from a tag.
    """
    return hashlib.sha3_256(tag.encode("utf-8")).digest()[:20]


def _error_string(msg: str) -> str:
    """Solidity Error(string) revert payload, hex encoded."""
    return "0x08c379a0" + encode(["string"], [msg]).hex()


# --- ledger fixtures ----------------------------------------------------------


@pytest.fixture
def addrs() -> Dict[str, bytes]:
    return {name: _det_address(name) for name in ("treasury", "alice", "bob", "carol")}


@pytest.fixture
def ledger(addrs: Dict[str, bytes]) -> TokenLedger:
    return TokenLedger("ffff", "F", 3, addrs["treasury"], 1_000)


# --- signers ------------------------------------------------------------------


def _role_signer(role: str) -> Signer:
    acct_id, key = LOCAL_NODE_ACCOUNTS[role]
    return Signer(key, account_id=AccountId.parse(acct_id))


@pytest.fixture
def owner() -> Signer:
    return _role_signer("owner")


@pytest.fixture
def spender() -> Signer:
    return _role_signer("spender")


@pytest.fixture
def recipient() -> Signer:
    return _role_signer("recipient")


@pytest.fixture
def local_config() -> HarnessConfig:
    return load_config({"HEDERA_NETWORK": "local-node"}, dotenv=False)


# --- fake relay ---------------------------------------------------------------


_CREATE_SELECTOR = function_signature_to_4byte_selector(CREATE_FUNGIBLE_SIG)
_VIEWS = ("name", "symbol", "decimals", "totalSupply", "balanceOf", "allowance")


class _Revert(Exception):
    pass


class FakeRelay:
    """
    Minimal in-memory JSON-RPC relay implementing only the methods exercised
    by the relay clients and provisioner.
    """

    def __init__(self, chain_id: int = 298, *, pending_polls: int = 0, first_token_num: int = 1001) -> None:
        self.chain_id = chain_id
        self.pending_polls = pending_polls
        self.hts_response_code = HTS_SUCCESS
        self.calls: List[Tuple[str, Any]] = []
        self.ledgers: Dict[bytes, TokenLedger] = {}
        self.registry = AssociationRegistry()
        self.nonces: Dict[bytes, int] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.senders: List[bytes] = []
        self._polls: Dict[str, int] = {}
        self._next_num = first_token_num

    # --- dispatch --------------------------------------------------------

    def call(self, method: str, params: Any = None) -> Any:
        self.calls.append((method, params))
        handler = getattr(self, "_" + method, None)
        if handler is None:
            raise RpcError(
                code=JsonRpcCode.METHOD_NOT_FOUND,
                message=f"Method {method} not found",
                method=method,
            )
        return handler(*(params or []))

    def methods(self) -> List[str]:
        return [m for m, _p in self.calls]

    def _next_token_address(self) -> bytes:
        return AccountId(0, 0, self._next_num).to_address_bytes()

    # --- eth_* -----------------------------------------------------------

    def _eth_chainId(self) -> str:
        return hex(self.chain_id)

    def _eth_gasPrice(self) -> str:
        return hex(710_000_000_000)

    def _eth_getTransactionCount(self, address: str, _tag: str) -> str:
        return hex(self.nonces.get(normalize_address(address), 0))

    def _eth_getTransactionReceipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        seen = self._polls.get(tx_hash, 0)
        self._polls[tx_hash] = seen + 1
        if seen < self.pending_polls:
            return None
        return self.receipts.get(tx_hash)

    def _eth_call(self, tx: Dict[str, Any], _tag: str) -> str:
        to = normalize_address(tx["to"])
        data = bytes.fromhex(tx["data"][2:])
        if to == normalize_address(HTS_ADDRESS):
            return "0x" + encode(
                ["int64", "address"], [self.hts_response_code, "0x" + self._next_token_address().hex()]
            ).hex()
        ledger = self.ledgers.get(to)
        if ledger is None:
            return "0x"
        fn, args = abi.decode_call(data)
        if fn not in _VIEWS:
            raise RpcError(code=JsonRpcCode.SERVER_ERROR, message=f"{fn} is not a view", method="eth_call")
        value = {
            "name": lambda: ledger.name,
            "symbol": lambda: ledger.symbol,
            "decimals": lambda: ledger.decimals,
            "totalSupply": ledger.total_supply,
            "balanceOf": lambda: ledger.balance_of(*args),
            "allowance": lambda: ledger.allowance(*args),
        }[fn]()
        return "0x" + abi.encode_result(fn, value).hex()

    def _eth_sendRawTransaction(self, raw_hex: str) -> str:
        raw = bytes.fromhex(raw_hex[2:])
        sender = normalize_address(Account.recover_transaction(raw))
        nonce_b, _gas_price, _gas, to, value_b, data, _v, _r, _s = rlp.decode(raw)
        nonce = int.from_bytes(nonce_b, "big")
        expected = self.nonces.get(sender, 0)
        if nonce != expected:
            raise RpcError(
                code=JsonRpcCode.SERVER_ERROR,
                message=f"Nonce too low. Provided nonce: {nonce}, current nonce: {expected}",
                method="eth_sendRawTransaction",
            )
        self.nonces[sender] = expected + 1
        self.senders.append(sender)

        tx_hash = "0x" + keccak(raw).hex()
        receipt: Dict[str, Any] = {
            "transactionHash": tx_hash,
            "from": "0x" + sender.hex(),
            "to": "0x" + bytes(to).hex(),
            "status": "0x1",
            "logs": [],
        }
        try:
            receipt["logs"] = self._execute(sender, bytes(to), int.from_bytes(value_b, "big"), bytes(data))
        except _Revert as exc:
            receipt["status"] = "0x0"
            receipt["revertReason"] = _error_string(str(exc))
        self.receipts[tx_hash] = receipt
        return tx_hash

    # --- execution -------------------------------------------------------

    def _execute(self, sender: bytes, to: bytes, value: int, data: bytes) -> List[Dict[str, Any]]:
        if to == normalize_address(HTS_ADDRESS):
            return self._create_token(sender, data)

        ledger = self.ledgers.get(to)
        if ledger is None:
            raise _Revert("INVALID_TOKEN_ID")
        fn, args = abi.decode_call(data)
        mark = len(ledger.events)
        try:
            if fn == "associate":
                if not self.registry.associate(sender, to):
                    raise _Revert("TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT")
            elif fn == "approve":
                ledger.approve(sender, *args)
            elif fn in ("transfer", "transferFrom"):
                if not self.registry.is_associated(args[-2], to):
                    raise _Revert("TOKEN_NOT_ASSOCIATED_TO_ACCOUNT")
                if fn == "transfer":
                    ledger.transfer(sender, *args)
                else:
                    ledger.transfer_from(sender, *args)
            else:
                raise _Revert(f"unsupported call {fn}")
        except RelayAllowanceError as exc:
            raise _Revert(str(exc)) from exc
        return [abi.encode_log(to, ev) for ev in ledger.events.since(mark)]

    def _create_token(self, sender: bytes, data: bytes) -> List[Dict[str, Any]]:
        if data[:4] != _CREATE_SELECTOR:
            raise _Revert("unknown HTS selector")
        token, supply, decimals = decode([_HEDERA_TOKEN, "int64", "int32"], data[4:])
        name, symbol, treasury = token[0], token[1], normalize_address(token[2])
        if treasury != sender:
            raise _Revert("INVALID_SIGNATURE")
        addr = self._next_token_address()
        self._next_num += 1
        self.ledgers[addr] = TokenLedger(name, symbol, decimals, treasury, supply, max_amount=INT64_MAX)
        self.registry.associate(treasury, addr)
        return []


@pytest.fixture
def relay() -> FakeRelay:
    return FakeRelay()
