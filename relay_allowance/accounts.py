# -*- coding: utf-8 -*-
"""
relay_allowance.accounts
========================

Account identifiers, EVM address helpers and the ECDSA signer used for relay
transactions.

Hedera accounts are addressed two ways on the JSON-RPC relay:

- the *long-zero* address derived from ``shard.realm.num``
  (4-byte shard || 8-byte realm || 8-byte num), which is what the Hedera SDK
  returns from ``toSolidityAddress()`` for accounts and tokens;
- the *EVM alias* derived from an ECDSA secp256k1 key, which is what a wallet
  built from that key reports as ``address``.

Ledger code works with raw 20-byte addresses; hex strings are only for I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Dict, Final, Mapping, Union

from eth_account import Account
from eth_keys import keys
from eth_utils import to_checksum_address

from .errors import InvalidAddress

ADDRESS_LEN: Final[int] = 20
ZERO_ADDRESS: Final[bytes] = b"\x00" * ADDRESS_LEN

_HEX_ADDR_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")
_ACCOUNT_ID_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")

AddressLike = Union[bytes, bytearray, str]


# ---------------------------------------------------------------------------
# Address normalization
# ---------------------------------------------------------------------------


def normalize_address(value: AddressLike) -> bytes:
    """
    Return the canonical 20-byte form of ``value``.

    Accepts raw bytes or a 40-hex-digit string (``0x`` prefix optional,
    any case). Raises InvalidAddress otherwise.
    """
    if isinstance(value, (bytes, bytearray)):
        if len(value) != ADDRESS_LEN:
            raise InvalidAddress(f"expected {ADDRESS_LEN} bytes, got {len(value)}")
        return bytes(value)
    if isinstance(value, str) and _HEX_ADDR_RE.match(value):
        return bytes.fromhex(value[2:] if value[:2].lower() == "0x" else value)
    raise InvalidAddress(f"not an address: {value!r}")


def to_hex_address(value: AddressLike) -> str:
    """Lowercase ``0x``-prefixed hex form."""
    return "0x" + normalize_address(value).hex()


def to_checksum(value: AddressLike) -> str:
    """EIP-55 checksummed hex form."""
    return to_checksum_address(to_hex_address(value))


def is_zero_address(value: AddressLike) -> bool:
    return normalize_address(value) == ZERO_ADDRESS


# ---------------------------------------------------------------------------
# Hedera entity ids
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountId:
    """``shard.realm.num`` entity id (accounts and tokens share the format)."""

    shard: int
    realm: int
    num: int

    def __post_init__(self) -> None:
        if self.shard < 0 or self.shard >= 2**32:
            raise ValueError(f"shard out of range: {self.shard}")
        if self.realm < 0 or self.realm >= 2**64:
            raise ValueError(f"realm out of range: {self.realm}")
        if self.num < 0 or self.num >= 2**64:
            raise ValueError(f"num out of range: {self.num}")

    @classmethod
    def parse(cls, text: str) -> "AccountId":
        m = _ACCOUNT_ID_RE.match(text.strip())
        if not m:
            raise ValueError(f"invalid account id: {text!r}")
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    @classmethod
    def from_solidity_address(cls, value: AddressLike) -> "AccountId":
        raw = normalize_address(value)
        return cls(
            int.from_bytes(raw[0:4], "big"),
            int.from_bytes(raw[4:12], "big"),
            int.from_bytes(raw[12:20], "big"),
        )

    def to_solidity_address(self) -> str:
        """40 hex digits, no prefix (same shape as the Hedera SDK)."""
        return self.to_address_bytes().hex()

    def to_address_bytes(self) -> bytes:
        return (
            self.shard.to_bytes(4, "big")
            + self.realm.to_bytes(8, "big")
            + self.num.to_bytes(8, "big")
        )

    def __str__(self) -> str:
        return f"{self.shard}.{self.realm}.{self.num}"


# ---------------------------------------------------------------------------
# Signer
# ---------------------------------------------------------------------------


class Signer:
    """
    ECDSA secp256k1 key holder.

    The signer's ``address`` is the EVM alias of its key; that is the identity
    the relay reports as ``msg.sender`` for transactions it signs.
    """

    def __init__(self, private_key: Union[str, bytes], account_id: "AccountId | None" = None) -> None:
        self._account = Account.from_key(private_key)
        self.account_id = account_id

    @classmethod
    def create(cls, account_id: "AccountId | None" = None) -> "Signer":
        return cls(Account.create().key, account_id=account_id)

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def address_bytes(self) -> bytes:
        return normalize_address(self._account.address)

    @cached_property
    def compressed_public_key(self) -> bytes:
        return keys.PrivateKey(bytes(self._account.key)).public_key.to_compressed_bytes()

    def sign_transaction(self, tx: Mapping[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw encoded bytes."""
        signed = self._account.sign_transaction(dict(tx))
        return bytes(signed.raw_transaction)

    def describe(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "account_id": str(self.account_id) if self.account_id else None,
        }

    def __repr__(self) -> str:
        return f"Signer(address={self.address}, account_id={self.account_id})"


__all__ = [
    "ADDRESS_LEN",
    "ZERO_ADDRESS",
    "AddressLike",
    "normalize_address",
    "to_hex_address",
    "to_checksum",
    "is_zero_address",
    "AccountId",
    "Signer",
]
