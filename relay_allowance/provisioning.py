# -*- coding: utf-8 -*-
"""
relay_allowance.provisioning
============================

Account and asset provisioning: create a fungible token with its whole
initial supply credited to a treasury, and associate accounts with it so they
may hold it.

Two implementations share the ``Provisioner`` protocol:

- ``LocalProvisioner`` keeps everything in process (TokenLedger per token,
  HTS-shaped long-zero token addresses, an association registry).
- ``RelayProvisioner`` goes through the JSON-RPC relay: token creation calls
  the HTS system contract at ``0x…0167`` (``createFungibleToken``), and
  association has the account call ``associate()`` on the token itself
  (HRC-719). Failures from the relay are surfaced as they come.
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Final, Optional, Protocol

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from .accounts import AccountId, AddressLike, Signer, normalize_address, to_checksum
from .config import HarnessConfig
from .erc20 import AssociationRegistry, LocalTokenClient, RelayTokenClient, TokenClient, transact
from .erc20 import abi as erc20_abi
from .errors import ProvisioningError
from .ledger import INT64_MAX, TokenLedger, require_name, require_symbol

log = logging.getLogger(__name__)

HTS_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000167"
HTS_SUCCESS: Final[int] = 22

# TokenKey.keyType bits
KEY_ADMIN: Final[int] = 1
KEY_KYC: Final[int] = 2
KEY_FREEZE: Final[int] = 4
KEY_WIPE: Final[int] = 8
KEY_SUPPLY: Final[int] = 16

DEFAULT_AUTO_RENEW_PERIOD: Final[int] = 7_776_000  # 90 days

_HEDERA_TOKEN = (
    "(string,string,address,string,bool,int64,bool,"
    "(uint256,(bool,address,bytes,bytes,address))[],"
    "(int64,address,int64))"
)
CREATE_FUNGIBLE_SIG: Final[str] = f"createFungibleToken({_HEDERA_TOKEN},int64,int32)"


@dataclass(frozen=True)
class TokenSpec:
    name: str = "ffff"
    symbol: str = "F"
    decimals: int = 3
    initial_supply: int = 100

    def __post_init__(self) -> None:
        require_name(self.name)
        require_symbol(self.symbol)
        if self.decimals < 0 or self.decimals > 2**31 - 1:
            raise ValueError(f"decimals out of range: {self.decimals}")
        if self.initial_supply < 0 or self.initial_supply > INT64_MAX:
            raise ValueError(f"initial supply outside int64: {self.initial_supply}")


@dataclass(frozen=True)
class ProvisionedToken:
    address: str
    spec: TokenSpec
    treasury: str

    @property
    def token_id(self) -> AccountId:
        return AccountId.from_solidity_address(self.address)


class Provisioner(Protocol):
    def create_token(self, treasury: Signer, spec: TokenSpec) -> ProvisionedToken: ...

    def associate(self, account: Signer, token_address: AddressLike) -> None: ...

    def client_for(self, signer: Signer, token_address: AddressLike) -> TokenClient: ...


# ---------------------------------------------------------------------------
# Local
# ---------------------------------------------------------------------------


class LocalProvisioner:
    def __init__(self, *, first_token_num: int = 1001) -> None:
        self.registry = AssociationRegistry()
        self._ledgers: Dict[bytes, TokenLedger] = {}
        self._nums = itertools.count(first_token_num)
        self._lock = threading.Lock()

    def create_account(self, account_id: Optional[AccountId] = None) -> Signer:
        signer = Signer.create(account_id)
        log.info("Created account %s", signer.address)
        return signer

    def create_token(self, treasury: Signer, spec: TokenSpec) -> ProvisionedToken:
        with self._lock:
            token_id = AccountId(0, 0, next(self._nums))
            addr = token_id.to_address_bytes()
            self._ledgers[addr] = TokenLedger(
                spec.name,
                spec.symbol,
                spec.decimals,
                treasury.address_bytes,
                spec.initial_supply,
                max_amount=INT64_MAX,
            )
        self.registry.associate(treasury.address_bytes, addr)
        log.info("Created HTS with tokenId: %s", token_id)
        return ProvisionedToken(address=to_checksum(addr), spec=spec, treasury=treasury.address)

    def associate(self, account: Signer, token_address: AddressLike) -> None:
        addr = normalize_address(token_address)
        if addr not in self._ledgers:
            raise ProvisioningError(f"INVALID_TOKEN_ID: {to_checksum(addr)}")
        if not self.registry.associate(account.address_bytes, addr):
            raise ProvisioningError(
                f"TOKEN_ALREADY_ASSOCIATED_TO_ACCOUNT: {account.address} / {to_checksum(addr)}"
            )
        log.info("Associated account %s with token %s", account.address, AccountId.from_solidity_address(addr))

    def ledger(self, token_address: AddressLike) -> TokenLedger:
        return self._ledgers[normalize_address(token_address)]

    def client_for(self, signer: Signer, token_address: AddressLike) -> LocalTokenClient:
        addr = normalize_address(token_address)
        return LocalTokenClient(self.ledger(addr), addr, signer, self.registry)


# ---------------------------------------------------------------------------
# Relay (HTS system contract + HRC-719)
# ---------------------------------------------------------------------------


def encode_create_fungible(treasury: Signer, spec: TokenSpec, *, memo: str = "") -> bytes:
    """
    Calldata for HTS ``createFungibleToken`` with the treasury key as admin,
    freeze, wipe and supply key, and freezeDefault false.
    """
    zero = "0x" + "00" * 20
    treasury_addr = to_checksum_address(treasury.address)
    key_value = (False, zero, b"", treasury.compressed_public_key, zero)
    token_keys = [(KEY_ADMIN | KEY_FREEZE | KEY_WIPE | KEY_SUPPLY, key_value)]
    expiry = (0, treasury_addr, DEFAULT_AUTO_RENEW_PERIOD)
    hedera_token = (
        spec.name,
        spec.symbol,
        treasury_addr,
        memo,
        False,  # infinite supply type
        0,
        False,  # freezeDefault
        token_keys,
        expiry,
    )
    return function_signature_to_4byte_selector(CREATE_FUNGIBLE_SIG) + encode(
        [_HEDERA_TOKEN, "int64", "int32"],
        [hedera_token, spec.initial_supply, spec.decimals],
    )


class RelayProvisioner:
    def __init__(self, rpc: Any, config: HarnessConfig, *, poll_interval_s: float = 0.5) -> None:
        self.rpc = rpc
        self.config = config
        self.poll_interval_s = poll_interval_s

    @property
    def chain_id(self) -> int:
        return self.config.network.chain_id

    def create_token(self, treasury: Signer, spec: TokenSpec) -> ProvisionedToken:
        data = encode_create_fungible(treasury, spec)
        value = self.config.hts_create_value

        simulated = self.rpc.call(
            "eth_call",
            [
                {
                    "from": treasury.address,
                    "to": HTS_ADDRESS,
                    "data": "0x" + data.hex(),
                    "value": hex(value),
                    "gas": hex(self.config.gas_limit),
                },
                "latest",
            ],
        )
        try:
            code, token_addr = decode(["int64", "address"], bytes.fromhex(str(simulated)[2:]))
        except (DecodingError, ValueError) as exc:
            raise ProvisioningError(
                f"createFungibleToken simulation returned undecodable data {str(simulated)[:74]!r}: {exc}"
            ) from exc
        if code != HTS_SUCCESS:
            raise ProvisioningError(f"createFungibleToken simulation returned response code {code}")

        transact(
            self.rpc,
            treasury,
            HTS_ADDRESS,
            data,
            chain_id=self.chain_id,
            value=value,
            gas_limit=self.config.gas_limit,
            timeout_s=self.config.request_timeout * 2,
            poll_interval_s=self.poll_interval_s,
        )

        # the simulated address is the next entity id; confirm nobody took it first
        name_data = erc20_abi.encode_call("name")
        on_chain = erc20_abi.decode_result(
            "name",
            self.rpc.call("eth_call", [{"to": token_addr, "data": "0x" + name_data.hex()}, "latest"]),
        )
        if on_chain != spec.name:
            raise ProvisioningError(
                f"token at {token_addr} has name {on_chain!r}, expected {spec.name!r}"
            )

        token_id = AccountId.from_solidity_address(token_addr)
        log.info("Created HTS with tokenId: %s", token_id)
        return ProvisionedToken(address=to_checksum(token_addr), spec=spec, treasury=treasury.address)

    def associate(self, account: Signer, token_address: AddressLike) -> None:
        self.client_for(account, token_address).associate()
        log.info(
            "Associated account %s with token %s",
            account.account_id or account.address,
            AccountId.from_solidity_address(token_address),
        )

    def client_for(self, signer: Signer, token_address: AddressLike) -> RelayTokenClient:
        return RelayTokenClient(
            self.rpc,
            token_address,
            signer,
            chain_id=self.chain_id,
            gas_limit=self.config.gas_limit,
            receipt_timeout_s=self.config.request_timeout * 2,
            poll_interval_s=self.poll_interval_s,
        )


__all__ = [
    "HTS_ADDRESS",
    "TokenSpec",
    "ProvisionedToken",
    "Provisioner",
    "LocalProvisioner",
    "RelayProvisioner",
    "encode_create_fungible",
]
