# -*- coding: utf-8 -*-
"""
relay_allowance.erc20.abi
=========================

Calldata and log codecs for the ERC-20 surface exercised by the harness.

Selectors and event topics are derived from the canonical signatures with
``eth_utils``; argument and return encoding uses ``eth_abi``. Addresses are
returned as raw 20-byte values so they compare directly with ledger state.
"""

from __future__ import annotations

from typing import Any, Dict, Final, List, Mapping, Sequence, Tuple

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address

from ..accounts import normalize_address
from ..errors import RelayAllowanceError
from ..ledger import EVT_APPROVAL, EVT_TRANSFER
from ..ledger.events import Event

# name -> (canonical signature, return types)
FUNCTIONS: Final[Dict[str, Tuple[str, Tuple[str, ...]]]] = {
    "name": ("name()", ("string",)),
    "symbol": ("symbol()", ("string",)),
    "decimals": ("decimals()", ("uint8",)),
    "totalSupply": ("totalSupply()", ("uint256",)),
    "balanceOf": ("balanceOf(address)", ("uint256",)),
    "allowance": ("allowance(address,address)", ("uint256",)),
    "approve": ("approve(address,uint256)", ("bool",)),
    "transfer": ("transfer(address,uint256)", ("bool",)),
    "transferFrom": ("transferFrom(address,address,uint256)", ("bool",)),
    # HRC-719 token facade
    "associate": ("associate()", ("uint256",)),
    "dissociate": ("dissociate()", ("uint256",)),
}

EVENTS: Final[Dict[str, str]] = {
    EVT_TRANSFER: "Transfer(address,address,uint256)",
    EVT_APPROVAL: "Approval(address,address,uint256)",
}


class AbiError(RelayAllowanceError):
    """Calldata, return data or a log could not be encoded/decoded."""


def _arg_types(signature: str) -> Tuple[str, ...]:
    inner = signature[signature.index("(") + 1 : -1]
    return tuple(t for t in inner.split(",") if t)


def selector(fn: str) -> bytes:
    return function_signature_to_4byte_selector(FUNCTIONS[fn][0])


def event_topic(name: str) -> bytes:
    return keccak(text=EVENTS[name])


SELECTORS: Final[Dict[bytes, str]] = {selector(fn): fn for fn in FUNCTIONS}
TOPICS: Final[Dict[bytes, str]] = {event_topic(ev): ev for ev in EVENTS}


def _to_abi(typ: str, value: Any) -> Any:
    if typ == "address":
        return to_checksum_address(normalize_address(value))
    return value


def _from_abi(typ: str, value: Any) -> Any:
    if typ == "address":
        return normalize_address(value)
    return value


def _hex_to_bytes(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if isinstance(data, str):
        s = data[2:] if data[:2].lower() == "0x" else data
        try:
            return bytes.fromhex(s)
        except ValueError:
            raise AbiError(f"not hex data: {data[:66]!r}") from None
    raise AbiError(f"unsupported data type: {type(data).__name__}")


def encode_call(fn: str, *args: Any) -> bytes:
    """selector || abi.encode(args)"""
    if fn not in FUNCTIONS:
        raise AbiError(f"unknown function: {fn}")
    types = _arg_types(FUNCTIONS[fn][0])
    if len(types) != len(args):
        raise AbiError(f"{fn} takes {len(types)} arguments, got {len(args)}")
    return selector(fn) + encode(list(types), [_to_abi(t, a) for t, a in zip(types, args)])


def decode_call(data: Any) -> Tuple[str, List[Any]]:
    """Inverse of encode_call: returns (function name, args)."""
    raw = _hex_to_bytes(data)
    fn = SELECTORS.get(raw[:4])
    if fn is None:
        raise AbiError(f"unknown selector 0x{raw[:4].hex()}")
    types = _arg_types(FUNCTIONS[fn][0])
    try:
        values = decode(list(types), raw[4:]) if types else ()
    except (DecodingError, ValueError) as exc:
        raise AbiError(f"bad calldata for {fn}: {exc}") from exc
    return fn, [_from_abi(t, v) for t, v in zip(types, values)]


def encode_result(fn: str, *values: Any) -> bytes:
    types = FUNCTIONS[fn][1]
    return encode(list(types), [_to_abi(t, v) for t, v in zip(types, values)])


def decode_result(fn: str, data: Any) -> Any:
    """Decode a single return value of ``fn``."""
    raw = _hex_to_bytes(data)
    if not raw:
        raise AbiError(f"empty return data for {fn}")
    types = FUNCTIONS[fn][1]
    try:
        (value,) = decode(list(types), raw)
    except (DecodingError, ValueError) as exc:
        raise AbiError(f"bad return data for {fn}: {exc}") from exc
    return _from_abi(types[0], value)


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------


def _topic_address(addr: bytes) -> str:
    return "0x" + (b"\x00" * 12 + normalize_address(addr)).hex()


def encode_log(token: Any, event: Event) -> Dict[str, Any]:
    """Ethereum-style log entry for a ledger event."""
    if event.name == EVT_TRANSFER:
        a, b = event.args["from"], event.args["to"]
    elif event.name == EVT_APPROVAL:
        a, b = event.args["owner"], event.args["spender"]
    else:
        raise AbiError(f"no log encoding for event {event.name}")
    return {
        "address": "0x" + normalize_address(token).hex(),
        "topics": ["0x" + event_topic(event.name).hex(), _topic_address(a), _topic_address(b)],
        "data": "0x" + encode(["uint256"], [int(event.args["value"])]).hex(),
    }


def decode_logs(logs: Sequence[Mapping[str, Any]]) -> List[Event]:
    """
    Decode Transfer/Approval entries from receipt logs; other logs are skipped.
    """
    out: List[Event] = []
    for entry in logs:
        topics = [_hex_to_bytes(t) for t in entry.get("topics") or []]
        if len(topics) != 3 or topics[0] not in TOPICS:
            continue
        name = TOPICS[topics[0]]
        try:
            (value,) = decode(["uint256"], _hex_to_bytes(entry.get("data") or "0x"))
        except (DecodingError, ValueError) as exc:
            raise AbiError(f"bad {name} log data: {exc}") from exc
        a, b = topics[1][-20:], topics[2][-20:]
        if name == EVT_TRANSFER:
            out.append(Event(name, {"from": a, "to": b, "value": value}))
        else:
            out.append(Event(name, {"owner": a, "spender": b, "value": value}))
    return out


__all__ = [
    "FUNCTIONS",
    "EVENTS",
    "AbiError",
    "selector",
    "event_topic",
    "encode_call",
    "decode_call",
    "encode_result",
    "decode_result",
    "encode_log",
    "decode_logs",
]
