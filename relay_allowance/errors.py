"""
Typed error classes for relay-allowance.

Ledger failures carry a short, stable byte ``code`` tag (``b"TOKEN:..."``) so
callers and logs can compare them without parsing messages. Transport and
submission failures (``RpcError``, ``TxError``) carry whatever the relay
returned, unmodified.

Everything derives from ``RelayAllowanceError`` so a caller can still catch the
whole family at once.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar, Dict, Optional

__all__ = [
    "RelayAllowanceError",
    "LedgerError",
    "InvalidAddress",
    "InvalidAmount",
    "InvalidMetadata",
    "InsufficientAllowance",
    "InsufficientBalance",
    "UnauthorizedCaller",
    "ArithmeticOverflow",
    "LedgerInvariantError",
    "TokenNotAssociated",
    "ConfigError",
    "ProvisioningError",
    "JsonRpcCode",
    "RpcError",
    "TxError",
]


class RelayAllowanceError(Exception):
    """Base class for all relay-allowance errors."""


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerError(RelayAllowanceError):
    """A token ledger operation was rejected; no state was changed."""

    code: ClassVar[bytes] = b"TOKEN:ERROR"

    def __str__(self) -> str:
        detail = super().__str__()
        tag = self.code.decode("ascii")
        return f"{tag}: {detail}" if detail else tag


class InvalidAddress(LedgerError):
    code = b"TOKEN:BAD_ADDR"


class InvalidAmount(LedgerError):
    code = b"TOKEN:BAD_AMOUNT"


class InvalidMetadata(LedgerError):
    code = b"TOKEN:BAD_META"


class ArithmeticOverflow(LedgerError):
    code = b"UINT:OVERFLOW"


class LedgerInvariantError(LedgerError):
    code = b"TOKEN:INVARIANT"


def _hex(addr: bytes) -> str:
    return "0x" + bytes(addr).hex()


@dataclass(eq=False)
class InsufficientAllowance(LedgerError):
    """Spender tried to move more than ``allowance[owner][spender]``."""

    owner: bytes
    spender: bytes
    available: int
    requested: int

    code: ClassVar[bytes] = b"TOKEN:ALLOWANCE_LOW"

    def __str__(self) -> str:
        return (
            f"{self.code.decode()}: spender={_hex(self.spender)} owner={_hex(self.owner)} "
            f"allowance={self.available} requested={self.requested}"
        )


@dataclass(eq=False)
class InsufficientBalance(LedgerError):
    """Account balance is lower than the amount being moved or burned."""

    account: bytes
    available: int
    requested: int

    code: ClassVar[bytes] = b"TOKEN:INSUFFICIENT_BALANCE"

    def __str__(self) -> str:
        return (
            f"{self.code.decode()}: account={_hex(self.account)} "
            f"balance={self.available} requested={self.requested}"
        )


@dataclass(eq=False)
class UnauthorizedCaller(LedgerError):
    """Caller acted on behalf of an account it does not control."""

    caller: bytes
    expected: bytes

    code: ClassVar[bytes] = b"TOKEN:NOT_OWNER"

    def __str__(self) -> str:
        return f"{self.code.decode()}: caller={_hex(self.caller)} expected={_hex(self.expected)}"


@dataclass(eq=False)
class TokenNotAssociated(RelayAllowanceError):
    """Recipient has not associated itself with the token (TOKEN_NOT_ASSOCIATED_TO_ACCOUNT)."""

    account: bytes
    token: bytes

    def __str__(self) -> str:
        return f"TOKEN_NOT_ASSOCIATED_TO_ACCOUNT: account={_hex(self.account)} token={_hex(self.token)}"


# ---------------------------------------------------------------------------
# Config / provisioning
# ---------------------------------------------------------------------------


class ConfigError(RelayAllowanceError):
    """Environment or network configuration could not be parsed."""


class ProvisioningError(RelayAllowanceError):
    """Account or asset provisioning was rejected by the network."""


# ---------------------------------------------------------------------------
# JSON-RPC / transactions
# ---------------------------------------------------------------------------


class JsonRpcCode(IntEnum):
    # JSON-RPC 2.0 spec
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (implementation-defined range: -32099 to -32000)
    SERVER_ERROR = -32000
    TRANSPORT_ERROR = -32098


@dataclass(eq=False)
class RpcError(RelayAllowanceError):
    """Raised when a JSON-RPC call returns an error object or the transport fails."""

    code: int
    message: str
    data: Optional[Any] = None
    method: Optional[str] = None
    http_status: Optional[int] = None

    def __str__(self) -> str:
        parts = [f"RPC[{self.method or '-'}] code={self.code} msg={self.message!r}"]
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)

    @property
    def code_enum(self) -> Optional[JsonRpcCode]:
        try:
            return JsonRpcCode(self.code)
        except ValueError:
            return None


@dataclass(eq=False)
class TxError(RelayAllowanceError):
    """
    Raised when a submitted transaction fails on-chain (receipt status 0).

    Fields:
      - tx_hash: hex hash of the failed transaction
      - status: receipt status as an int (0 for a revert)
      - revert_reason: decoded or raw revert data reported by the relay, if any
      - receipt: the receipt body for further inspection
    """

    message: str
    tx_hash: Optional[str] = None
    status: Optional[int] = None
    revert_reason: Optional[str] = None
    receipt: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        suffix = f" tx={self.tx_hash}" if self.tx_hash else ""
        reason = f" reason={self.revert_reason}" if self.revert_reason else ""
        return f"TxError{suffix}{reason}: {self.message}"
