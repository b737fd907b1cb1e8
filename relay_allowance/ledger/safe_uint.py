# -*- coding: utf-8 -*-
"""
relay_allowance.ledger.safe_uint
================================

Checked unsigned-integer helpers for the token ledger.

- Integer-only, never floats.
- "checked" variants raise ArithmeticOverflow instead of wrapping or clamping.
"""

from __future__ import annotations

from ..errors import ArithmeticOverflow, InvalidAmount
from . import U256_MAX


def _require_uint(bound: int, *xs: int) -> None:
    for x in xs:
        if isinstance(x, bool) or not isinstance(x, int) or x < 0 or x > bound:
            raise InvalidAmount(f"value {x!r} outside [0, {bound}]")


def checked_add(x: int, y: int, bound: int = U256_MAX) -> int:
    """Checked add: raise on overflow past ``bound``."""
    _require_uint(bound, x, y)
    s = x + y
    if s > bound:
        raise ArithmeticOverflow(f"{x} + {y} exceeds {bound}")
    return s


def checked_sub(x: int, y: int, bound: int = U256_MAX) -> int:
    """Checked sub: raise on underflow (y > x)."""
    _require_uint(bound, x, y)
    if y > x:
        raise ArithmeticOverflow(f"{x} - {y} underflows")
    return x - y


__all__ = ["checked_add", "checked_sub"]
