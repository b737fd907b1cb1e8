# -*- coding: utf-8 -*-
"""
relay_allowance.erc20.client
============================

The token-standard call surface shared by the local and relay clients.

A client is bound to one token and one signer, like an ethers ``Contract``
connected to a wallet: mutating calls act as that signer, and ``connect``
returns a sibling client acting as another signer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..accounts import AddressLike
from ..ledger.events import Event


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    status: int
    events: List[Event] = field(default_factory=list)
    raw: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == 1


@runtime_checkable
class TokenClient(Protocol):
    @property
    def address(self) -> str: ...

    @property
    def token_address(self) -> str: ...

    def approve(self, spender: AddressLike, amount: int) -> Receipt: ...

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int: ...

    def transfer_from(self, owner: AddressLike, to: AddressLike, amount: int) -> Receipt: ...

    def transfer(self, to: AddressLike, amount: int) -> Receipt: ...

    def balance_of(self, account: AddressLike) -> int: ...

    def connect(self, signer: Any) -> "TokenClient": ...


__all__ = ["Receipt", "TokenClient"]
