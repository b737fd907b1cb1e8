"""
relay_allowance.config: network selection, relay endpoint and test accounts.

Configuration precedence:
  1) Process environment
  2) A ``.env`` file in the working directory (loaded with python-dotenv,
     never overriding variables that are already set)
  3) Defaults below

Key env vars:
  - HEDERA_NETWORK      name ("testnet", "local-node", ...) or a JSON object
                        mapping node address -> node account id.  default: "{}"
  - SUPPORTED_ENV       comma/space separated named networks.
                        default: "mainnet,testnet,previewnet,local-node"
  - RELAY_URL           JSON-RPC relay URL (http/https)
  - CHAIN_ID            int or 0x-hex
  - RELAY_TIMEOUT       float seconds                      default: 30
  - RELAY_MAX_RETRIES   int                                default: 3
  - OWNER_KEY / SPENDER_KEY / RECIPIENT_KEY    hex ECDSA private keys
  - OWNER_ID  / SPENDER_ID  / RECIPIENT_ID     account ids (0.0.N)
  - HTS_CREATE_VALUE    weibars sent with token creation   default: 50 HBAR
  - GAS_LIMIT           gas for every submitted tx         default: 1_000_000

Usage:
    from relay_allowance.config import load_config
    cfg = load_config()
    print(cfg.network.relay_url, cfg.network.chain_id)
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from .accounts import AccountId, Signer
from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_SUPPORTED_ENV = "mainnet,testnet,previewnet,local-node"
DEFAULT_LOCAL_RELAY = "http://localhost:7546"
DEFAULT_LOCAL_CHAIN_ID = 298

# Named networks: relay URL and EVM chain id.
NAMED_NETWORKS: Dict[str, Tuple[str, int]] = {
    "mainnet": ("https://mainnet.hashio.io/api", 295),
    "testnet": ("https://testnet.hashio.io/api", 296),
    "previewnet": ("https://previewnet.hashio.io/api", 297),
    "local-node": (DEFAULT_LOCAL_RELAY, DEFAULT_LOCAL_CHAIN_ID),
    "localhost": (DEFAULT_LOCAL_RELAY, DEFAULT_LOCAL_CHAIN_ID),
}

# Pre-funded ECDSA accounts of the hedera-local-node image (public dev keys).
LOCAL_NODE_ACCOUNTS: Dict[str, Tuple[str, str]] = {
    "owner": ("0.0.1013", "0x2e1d968b041d84dd120a5860cee60cd83f9374ef527ca86996317ada3d0d03e7"),
    "spender": ("0.0.1014", "0x45a5a7108a18dd5013cf2d5857a28144beadc9c70b3bdbd914e38df4e804b8d8"),
    "recipient": ("0.0.1015", "0x6e9d61a325be3f6675cf8b7676c70e4a004d2308e3e182370a41f5653d52c6bd"),
}

HBAR_IN_WEIBARS = 10**18

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")


# ----------------------------- helpers ---------------------------------------


def _env(env: Mapping[str, str], name: str, default: Optional[str] = None) -> Optional[str]:
    v = env.get(name)
    return v if v not in (None, "") else default


def _parse_int(name: str, val: Optional[str], default: int) -> int:
    """
    Accepts decimal or 0x-hex str and returns int.
    """
    if val is None:
        return default
    s = val.strip()
    try:
        return int(s, 16) if _HEX_RE.match(s) else int(s, 10)
    except ValueError:
        raise ConfigError(f"{name} is not an integer: {val!r}") from None


def _parse_float(name: str, val: Optional[str], default: float) -> float:
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ConfigError(f"{name} is not a number: {val!r}") from None


def _ensure_http(url: str) -> str:
    lower = url.lower()
    if not (lower.startswith("http://") or lower.startswith("https://")):
        raise ConfigError(f"RELAY_URL must start with http:// or https://, got: {url!r}")
    return url


def parse_supported(raw: Optional[str]) -> Tuple[str, ...]:
    text = raw if raw is not None else DEFAULT_SUPPORTED_ENV
    return tuple(p.strip().lower() for p in re.split(r"[,\s]+", text) if p.strip())


# ------------------------------- network -------------------------------------


@dataclass(frozen=True)
class NetworkSelection:
    """
    Either a named network (``name`` set, ``nodes`` empty) or an explicit
    node map (``name`` None, ``nodes`` = address -> node account id).
    """

    name: Optional[str]
    nodes: Dict[str, str]
    relay_url: str
    chain_id: int

    @property
    def is_named(self) -> bool:
        return self.name is not None

    @property
    def is_local(self) -> bool:
        return self.name in (None, "local-node", "localhost")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "nodes": dict(self.nodes),
            "relay_url": self.relay_url,
            "chain_id": self.chain_id,
        }


def select_network(
    raw: Optional[str],
    supported: Tuple[str, ...],
    *,
    relay_url: Optional[str] = None,
    chain_id: Optional[int] = None,
) -> NetworkSelection:
    """
    Pick a named network when ``raw`` (case-insensitive) is in ``supported``;
    otherwise parse ``raw`` as a JSON node map.
    """
    value = (raw if raw is not None else "{}").strip()
    name = value.lower()

    if name in supported:
        default_url, default_chain = NAMED_NETWORKS.get(name, (DEFAULT_LOCAL_RELAY, DEFAULT_LOCAL_CHAIN_ID))
        return NetworkSelection(
            name=name,
            nodes={},
            relay_url=_ensure_http(relay_url or default_url),
            chain_id=chain_id if chain_id is not None else default_chain,
        )

    try:
        nodes = json.loads(value or "{}")
    except json.JSONDecodeError:
        raise ConfigError(
            f"HEDERA_NETWORK {raw!r} is neither a supported name {list(supported)} nor a JSON node map"
        ) from None
    if not isinstance(nodes, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in nodes.items()
    ):
        raise ConfigError("HEDERA_NETWORK node map must be a JSON object of address -> account id")
    for node_id in nodes.values():
        try:
            AccountId.parse(node_id)
        except ValueError as exc:
            raise ConfigError(f"bad node account id in HEDERA_NETWORK: {exc}") from None

    return NetworkSelection(
        name=None,
        nodes=dict(nodes),
        relay_url=_ensure_http(relay_url or DEFAULT_LOCAL_RELAY),
        chain_id=chain_id if chain_id is not None else DEFAULT_LOCAL_CHAIN_ID,
    )


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class AccountConfig:
    account_id: Optional[AccountId]
    private_key: str

    def signer(self) -> Signer:
        return Signer(self.private_key, account_id=self.account_id)


@dataclass(frozen=True)
class HarnessConfig:
    network: NetworkSelection
    owner: Optional[AccountConfig]
    spender: Optional[AccountConfig]
    recipient: Optional[AccountConfig]
    request_timeout: float = 30.0
    max_retries: int = 3
    gas_limit: int = 1_000_000
    hts_create_value: int = 50 * HBAR_IN_WEIBARS
    extra: Dict[str, Any] = field(default_factory=dict)

    def require_accounts(self) -> Tuple[AccountConfig, AccountConfig, AccountConfig]:
        missing = [
            role for role in ("owner", "spender", "recipient") if getattr(self, role) is None
        ]
        if missing:
            names = ", ".join(f"{r.upper()}_KEY" for r in missing)
            raise ConfigError(f"missing account keys for this network: {names}")
        return self.owner, self.spender, self.recipient  # type: ignore[return-value]

    def as_dict(self) -> Dict[str, Any]:
        def acct(a: Optional[AccountConfig]) -> Optional[Dict[str, Any]]:
            if a is None:
                return None
            return {"account_id": str(a.account_id) if a.account_id else None,
                    "address": a.signer().address}

        return {
            "network": self.network.as_dict(),
            "owner": acct(self.owner),
            "spender": acct(self.spender),
            "recipient": acct(self.recipient),
            "request_timeout": self.request_timeout,
            "max_retries": self.max_retries,
            "gas_limit": self.gas_limit,
            "hts_create_value": self.hts_create_value,
        }


def _account(env: Mapping[str, str], role: str, network: NetworkSelection) -> Optional[AccountConfig]:
    key = _env(env, f"{role.upper()}_KEY")
    raw_id = _env(env, f"{role.upper()}_ID")
    if key is None and network.is_local:
        default_id, key = LOCAL_NODE_ACCOUNTS[role]
        raw_id = raw_id or default_id
    if key is None:
        return None
    try:
        acct_id = AccountId.parse(raw_id) if raw_id else None
    except ValueError as exc:
        raise ConfigError(f"{role.upper()}_ID: {exc}") from None
    return AccountConfig(account_id=acct_id, private_key=key)


def load_config(env: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> HarnessConfig:
    """
    Build a HarnessConfig from ``env`` (default: os.environ, after loading .env).
    """
    if env is None:
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True), override=False)
        env = os.environ

    chain_raw = _env(env, "CHAIN_ID")
    network = select_network(
        _env(env, "HEDERA_NETWORK", "{}"),
        parse_supported(_env(env, "SUPPORTED_ENV")),
        relay_url=_env(env, "RELAY_URL"),
        chain_id=_parse_int("CHAIN_ID", chain_raw, 0) if chain_raw is not None else None,
    )
    log.debug("selected network %s", network.as_dict())

    return HarnessConfig(
        network=network,
        owner=_account(env, "owner", network),
        spender=_account(env, "spender", network),
        recipient=_account(env, "recipient", network),
        request_timeout=_parse_float("RELAY_TIMEOUT", _env(env, "RELAY_TIMEOUT"), 30.0),
        max_retries=_parse_int("RELAY_MAX_RETRIES", _env(env, "RELAY_MAX_RETRIES"), 3),
        gas_limit=_parse_int("GAS_LIMIT", _env(env, "GAS_LIMIT"), 1_000_000),
        hts_create_value=_parse_int(
            "HTS_CREATE_VALUE", _env(env, "HTS_CREATE_VALUE"), 50 * HBAR_IN_WEIBARS
        ),
    )


__all__ = [
    "NAMED_NETWORKS",
    "LOCAL_NODE_ACCOUNTS",
    "NetworkSelection",
    "AccountConfig",
    "HarnessConfig",
    "parse_supported",
    "select_network",
    "load_config",
]
