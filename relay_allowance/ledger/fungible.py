# -*- coding: utf-8 -*-
"""
ERC-20 style fungible token ledger
==================================

In-process, float-free balance and allowance accounting with the semantics a
token-standard contract exposes over JSON-RPC. It serves two purposes: a
reference model for asserting on a relay's behavior, and the backing store of
the local (offline) token client.

Highlights
----------
- Explicit `caller` parameters for mutating calls (no ambient msg.sender).
- `approve` replaces the (owner, spender) slot; it never adds to it.
- `transfer_from` checks allowance, then balance, and only then mutates
  owner balance, recipient balance and allowance together.
- Every operation runs under one re-entrant lock, so no reader ever observes
  a half-applied mutation.
- Events appended to an `EventLog`:
    - "Transfer" { "from": bytes, "to": bytes, "value": int }
    - "Approval" { "owner": bytes, "spender": bytes, "value": int }

Public interface
----------------
# metadata / views
name, symbol, decimals, treasury, max_amount
total_supply() -> int
balance_of(addr) -> int
allowance(owner, spender) -> int

# mutations (explicit caller)
transfer(caller, to, amount) -> bool
approve(caller, spender, amount, *, owner=None) -> bool
transfer_from(caller, owner, to, amount) -> bool
increase_allowance(caller, spender, added) -> bool
decrease_allowance(caller, spender, subtracted) -> bool

# treasury-gated supply control
mint(caller, to, amount) -> bool
burn(caller, amount) -> bool

# inspection
capture() -> context manager yielding the events emitted inside it
snapshot(), check_invariants(), subscribe(callback)
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from ..accounts import ZERO_ADDRESS, AddressLike, normalize_address
from ..errors import (InsufficientAllowance, InsufficientBalance,
                      InvalidAddress, LedgerInvariantError,
                      UnauthorizedCaller)
from . import (EVT_APPROVAL, EVT_TRANSFER, U256_MAX, clamp_decimals,
               require_amount, require_name, require_symbol)
from .events import Event, EventLog
from .safe_uint import checked_add, checked_sub

log = logging.getLogger(__name__)


def _nonzero(addr: AddressLike, role: str) -> bytes:
    raw = normalize_address(addr)
    if raw == ZERO_ADDRESS:
        raise InvalidAddress(f"{role} is the zero address")
    return raw


class TokenLedger:
    def __init__(
        self,
        name: str,
        symbol: str,
        decimals: int,
        treasury: AddressLike,
        initial_supply: int,
        *,
        max_amount: int = U256_MAX,
    ) -> None:
        self._lock = threading.RLock()
        self.max_amount = max_amount
        self.name = require_name(name)
        self.symbol = require_symbol(symbol)
        self.decimals = clamp_decimals(int(decimals))
        self.treasury = _nonzero(treasury, "treasury")
        require_amount(initial_supply, max_amount)

        self._total = 0
        self._balances: Dict[bytes, int] = {}
        self._allowances: Dict[Tuple[bytes, bytes], int] = {}
        self.events = EventLog()

        if initial_supply > 0:
            self._credit(self.treasury, initial_supply)
            self._total = initial_supply
            self.events.emit(
                EVT_TRANSFER,
                {"from": ZERO_ADDRESS, "to": self.treasury, "value": initial_supply},
            )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def total_supply(self) -> int:
        with self._lock:
            return self._total

    def balance_of(self, addr: AddressLike) -> int:
        raw = normalize_address(addr)
        with self._lock:
            return self._balances.get(raw, 0)

    def allowance(self, owner: AddressLike, spender: AddressLike) -> int:
        key = (normalize_address(owner), normalize_address(spender))
        with self._lock:
            return self._allowances.get(key, 0)

    # ------------------------------------------------------------------
    # Mutations (explicit caller)
    # ------------------------------------------------------------------

    def transfer(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        sender = normalize_address(caller)
        dest = _nonzero(to, "recipient")
        require_amount(amount, self.max_amount)

        with self._lock:
            bal = self._balances.get(sender, 0)
            if bal < amount:
                raise InsufficientBalance(account=sender, available=bal, requested=amount)
            self._move(sender, dest, amount)
            self.events.emit(EVT_TRANSFER, {"from": sender, "to": dest, "value": amount})
        log.debug("transfer %s -> %s value=%d", sender.hex(), dest.hex(), amount)
        return True

    def approve(
        self,
        caller: AddressLike,
        spender: AddressLike,
        amount: int,
        *,
        owner: Optional[AddressLike] = None,
    ) -> bool:
        """
        Set allowance[caller][spender] = amount, discarding any previous value.

        ``owner`` may be passed to assert on whose behalf the call is made;
        anything other than the caller itself is rejected.
        """
        signer = normalize_address(caller)
        if owner is not None and normalize_address(owner) != signer:
            raise UnauthorizedCaller(caller=signer, expected=normalize_address(owner))
        sp = _nonzero(spender, "spender")
        require_amount(amount, self.max_amount)

        with self._lock:
            self._allowances[(signer, sp)] = amount
            self.events.emit(EVT_APPROVAL, {"owner": signer, "spender": sp, "value": amount})
        log.debug("approve owner=%s spender=%s value=%d", signer.hex(), sp.hex(), amount)
        return True

    def transfer_from(
        self, caller: AddressLike, owner: AddressLike, to: AddressLike, amount: int
    ) -> bool:
        """
        Spender (`caller`) moves `amount` from `owner` to `to` using its allowance.
        """
        spender = normalize_address(caller)
        src = normalize_address(owner)
        dest = _nonzero(to, "recipient")
        require_amount(amount, self.max_amount)

        with self._lock:
            allowed = self._allowances.get((src, spender), 0)
            if allowed < amount:
                raise InsufficientAllowance(
                    owner=src, spender=spender, available=allowed, requested=amount
                )
            bal = self._balances.get(src, 0)
            if bal < amount:
                raise InsufficientBalance(account=src, available=bal, requested=amount)

            if amount:
                self._move(src, dest, amount)
                self._allowances[(src, spender)] = allowed - amount
            self.events.emit(EVT_TRANSFER, {"from": src, "to": dest, "value": amount})
        log.debug(
            "transfer_from spender=%s %s -> %s value=%d", spender.hex(), src.hex(), dest.hex(), amount
        )
        return True

    def increase_allowance(self, caller: AddressLike, spender: AddressLike, added: int) -> bool:
        signer = normalize_address(caller)
        sp = _nonzero(spender, "spender")
        require_amount(added, self.max_amount)

        with self._lock:
            cur = self._allowances.get((signer, sp), 0)
            new = checked_add(cur, added, self.max_amount)
            self._allowances[(signer, sp)] = new
            self.events.emit(EVT_APPROVAL, {"owner": signer, "spender": sp, "value": new})
        return True

    def decrease_allowance(self, caller: AddressLike, spender: AddressLike, subtracted: int) -> bool:
        signer = normalize_address(caller)
        sp = _nonzero(spender, "spender")
        require_amount(subtracted, self.max_amount)

        with self._lock:
            cur = self._allowances.get((signer, sp), 0)
            if cur < subtracted:
                raise InsufficientAllowance(
                    owner=signer, spender=sp, available=cur, requested=subtracted
                )
            self._allowances[(signer, sp)] = cur - subtracted
            self.events.emit(
                EVT_APPROVAL, {"owner": signer, "spender": sp, "value": cur - subtracted}
            )
        return True

    # ------------------------------------------------------------------
    # Treasury-gated supply control
    # ------------------------------------------------------------------

    def mint(self, caller: AddressLike, to: AddressLike, amount: int) -> bool:
        self._require_treasury(caller)
        dest = _nonzero(to, "recipient")
        require_amount(amount, self.max_amount)

        with self._lock:
            new_total = checked_add(self._total, amount, self.max_amount)
            self._credit(dest, amount)
            self._total = new_total
            self.events.emit(EVT_TRANSFER, {"from": ZERO_ADDRESS, "to": dest, "value": amount})
        return True

    def burn(self, caller: AddressLike, amount: int) -> bool:
        """
        Treasury burns its own tokens.
        """
        holder = self._require_treasury(caller)
        require_amount(amount, self.max_amount)

        with self._lock:
            bal = self._balances.get(holder, 0)
            if bal < amount:
                raise InsufficientBalance(account=holder, available=bal, requested=amount)
            self._balances[holder] = bal - amount
            self._total = checked_sub(self._total, amount, self.max_amount)
            self.events.emit(EVT_TRANSFER, {"from": holder, "to": ZERO_ADDRESS, "value": amount})
        return True

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def subscribe(self, callback: Callable[[Event], None]) -> Callable[[], None]:
        return self.events.subscribe(callback)

    @contextmanager
    def capture(self) -> Iterator[List[Event]]:
        """
        Hold the ledger lock for the block and collect the events emitted in it.

        The list is filled when the block exits without raising.
        """
        with self._lock:
            mark = len(self.events)
            captured: List[Event] = []
            yield captured
            captured.extend(self.events.since(mark))

    def snapshot(self) -> Dict[str, object]:
        """Plain copy of the ledger state, keyed by lowercase hex addresses."""
        with self._lock:
            return {
                "total_supply": self._total,
                "balances": {"0x" + a.hex(): v for a, v in self._balances.items()},
                "allowances": {
                    ("0x" + o.hex(), "0x" + s.hex()): v for (o, s), v in self._allowances.items()
                },
            }

    def check_invariants(self) -> None:
        with self._lock:
            if any(v < 0 for v in self._balances.values()):
                raise LedgerInvariantError("negative balance")
            if any(v < 0 for v in self._allowances.values()):
                raise LedgerInvariantError("negative allowance")
            held = sum(self._balances.values())
            if held != self._total:
                raise LedgerInvariantError(f"balances sum {held} != total supply {self._total}")

    # ------------------------------------------------------------------
    # Internals (callers hold the lock)
    # ------------------------------------------------------------------

    def _credit(self, to: bytes, amount: int) -> None:
        self._balances[to] = checked_add(self._balances.get(to, 0), amount, self.max_amount)

    def _move(self, src: bytes, dest: bytes, amount: int) -> None:
        # compute both sides before writing either
        new_src = self._balances.get(src, 0) - amount
        new_dest = (
            new_src + amount
            if src == dest
            else checked_add(self._balances.get(dest, 0), amount, self.max_amount)
        )
        self._balances[src] = new_src
        self._balances[dest] = new_dest

    def _require_treasury(self, caller: AddressLike) -> bytes:
        raw = normalize_address(caller)
        if raw != self.treasury:
            raise UnauthorizedCaller(caller=raw, expected=self.treasury)
        return raw

    def __repr__(self) -> str:
        return (
            f"TokenLedger(name={self.name!r}, symbol={self.symbol!r}, decimals={self.decimals}, "
            f"total_supply={self._total})"
        )


__all__ = ["TokenLedger"]
