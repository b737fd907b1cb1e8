# -*- coding: utf-8 -*-
"""
In-process token client backed by a TokenLedger.

Mirrors what the relay does for an HTS token: the signer is the caller, and a
recipient must be associated with the token before it can receive it. Ledger
errors propagate unchanged; nothing is retried.
"""

from __future__ import annotations

import hashlib
import itertools
import logging
import threading
from typing import Callable, Iterable, Set, Tuple, Union

from ..accounts import AddressLike, Signer, normalize_address, to_checksum
from ..errors import TokenNotAssociated
from ..ledger import TokenLedger
from .client import Receipt

log = logging.getLogger(__name__)

_tx_counter = itertools.count(1)


class AssociationRegistry:
    """Which accounts have opted in to hold which tokens."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pairs: Set[Tuple[bytes, bytes]] = set()

    def associate(self, account: AddressLike, token: AddressLike) -> bool:
        """Returns False when the pair was already associated."""
        pair = (normalize_address(account), normalize_address(token))
        with self._lock:
            if pair in self._pairs:
                return False
            self._pairs.add(pair)
            return True

    def is_associated(self, account: AddressLike, token: AddressLike) -> bool:
        with self._lock:
            return (normalize_address(account), normalize_address(token)) in self._pairs

    def tokens_of(self, account: AddressLike) -> Iterable[bytes]:
        acct = normalize_address(account)
        with self._lock:
            return sorted(t for a, t in self._pairs if a == acct)


def _fake_tx_hash(token: bytes) -> str:
    n = next(_tx_counter)
    return "0x" + hashlib.sha3_256(token + n.to_bytes(8, "big")).hexdigest()


class LocalTokenClient:
    def __init__(
        self,
        ledger: TokenLedger,
        token_address: AddressLike,
        signer: Union[Signer, AddressLike],
        registry: "AssociationRegistry | None" = None,
    ) -> None:
        self.ledger = ledger
        self._token = normalize_address(token_address)
        self._caller = signer.address_bytes if isinstance(signer, Signer) else normalize_address(signer)
        self.registry = registry

    @property
    def address(self) -> str:
        return to_checksum(self._caller)

    @property
    def token_address(self) -> str:
        return to_checksum(self._token)

    def connect(self, signer: Union[Signer, AddressLike]) -> "LocalTokenClient":
        return LocalTokenClient(self.ledger, self._token, signer, self.registry)

    # --- views -----------------------------------------------------------

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        return self.ledger.allowance(owner, spender)

    def balance_of(self, account: AddressLike) -> int:
        return self.ledger.balance_of(account)

    def total_supply(self) -> int:
        return self.ledger.total_supply()

    # --- mutations -------------------------------------------------------

    def approve(self, spender: AddressLike, amount: int) -> Receipt:
        return self._execute(lambda: self.ledger.approve(self._caller, spender, amount))

    def transfer(self, to: AddressLike, amount: int) -> Receipt:
        self._require_associated(to)
        return self._execute(lambda: self.ledger.transfer(self._caller, to, amount))

    def transfer_from(self, owner: AddressLike, to: AddressLike, amount: int) -> Receipt:
        self._require_associated(to)
        return self._execute(lambda: self.ledger.transfer_from(self._caller, owner, to, amount))

    # --- internals -------------------------------------------------------

    def _require_associated(self, account: AddressLike) -> None:
        if self.registry is not None and not self.registry.is_associated(account, self._token):
            raise TokenNotAssociated(account=normalize_address(account), token=self._token)

    def _execute(self, op: Callable[[], bool]) -> Receipt:
        with self.ledger.capture() as events:
            op()
        tx_hash = _fake_tx_hash(self._token)
        log.debug("local tx %s events=%s", tx_hash, [e.name for e in events])
        return Receipt(tx_hash=tx_hash, status=1, events=events)


__all__ = ["AssociationRegistry", "LocalTokenClient"]
