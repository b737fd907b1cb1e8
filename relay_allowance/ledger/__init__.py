# -*- coding: utf-8 -*-
"""
relay_allowance.ledger
======================

Conventions and validation shared by the in-process token ledger.

Conventions
-----------
Addresses are raw 20-byte values (see ``relay_allowance.accounts``); the ledger
keeps two maps:
  - balances:   <addr>            -> amount
  - allowances: (<owner>, <spender>) -> amount   (one slot per pair)

Events (names as str):
  - "Transfer" with payload { "from": bytes, "to": bytes, "value": int }
  - "Approval" with payload { "owner": bytes, "spender": bytes, "value": int }

Symbols/Names:
  - 1..100 printable ASCII (the HTS limit for both).

Numeric domain:
  - Amounts are ints in [0, max_amount]. ``max_amount`` is U256_MAX for an
    ERC-20 style ledger and INT64_MAX for one mirroring an HTS token.
"""

from __future__ import annotations

from typing import Final

from ..errors import InvalidAmount, InvalidMetadata

# -----------------------------------------------------------------------------
# Public constants
# -----------------------------------------------------------------------------

EVT_TRANSFER: Final[str] = "Transfer"
EVT_APPROVAL: Final[str] = "Approval"

U256_MAX: Final[int] = 2**256 - 1
INT64_MAX: Final[int] = 2**63 - 1

MAX_DECIMALS: Final[int] = 18
MAX_NAME_LEN: Final[int] = 100


# -----------------------------------------------------------------------------
# Validation helpers
# -----------------------------------------------------------------------------


def require_amount(n: int, max_amount: int = U256_MAX) -> int:
    """
    Ensure `n` is an integer amount in [0, max_amount]. bool is not an amount.
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise InvalidAmount(f"amount must be int, got {type(n).__name__}")
    if n < 0 or n > max_amount:
        raise InvalidAmount(f"amount {n} outside [0, {max_amount}]")
    return n


def is_printable_ascii(s: str) -> bool:
    """
    True iff every character is printable ASCII (32..126).
    """
    if not isinstance(s, str) or len(s) == 0:
        return False
    return all(32 <= ord(ch) <= 126 for ch in s)


def require_name(name: str) -> str:
    if not is_printable_ascii(name) or len(name) > MAX_NAME_LEN:
        raise InvalidMetadata(f"bad token name: {name!r}")
    return name


def require_symbol(sym: str) -> str:
    if not is_printable_ascii(sym) or len(sym) > MAX_NAME_LEN:
        raise InvalidMetadata(f"bad token symbol: {sym!r}")
    return sym


def clamp_decimals(n: int) -> int:
    """
    Clamp decimals to [0, MAX_DECIMALS].
    """
    if n < 0:
        return 0
    if n > MAX_DECIMALS:
        return MAX_DECIMALS
    return n


from .events import Event, EventLog  # noqa: E402
from .fungible import TokenLedger  # noqa: E402

__all__ = [
    "EVT_TRANSFER",
    "EVT_APPROVAL",
    "U256_MAX",
    "INT64_MAX",
    "MAX_DECIMALS",
    "require_amount",
    "require_name",
    "require_symbol",
    "is_printable_ascii",
    "clamp_decimals",
    "Event",
    "EventLog",
    "TokenLedger",
]
