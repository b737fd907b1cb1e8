from __future__ import annotations

import json

import pytest

from relay_allowance.config import (DEFAULT_LOCAL_RELAY, LOCAL_NODE_ACCOUNTS,
                                    load_config, parse_supported,
                                    select_network)
from relay_allowance.errors import ConfigError

SUPPORTED = parse_supported(None)


def test_parse_supported_default_and_custom():
    assert SUPPORTED == ("mainnet", "testnet", "previewnet", "local-node")
    assert parse_supported("testnet, Mainnet") == ("testnet", "mainnet")


@pytest.mark.parametrize(
    "raw,chain",
    [("testnet", 296), ("TESTNET", 296), ("mainnet", 295), ("previewnet", 297), ("local-node", 298)],
)
def test_named_network(raw, chain):
    sel = select_network(raw, SUPPORTED)
    assert sel.is_named
    assert sel.name == raw.lower()
    assert sel.nodes == {}
    assert sel.chain_id == chain


def test_unsupported_name_is_parsed_as_json_and_fails():
    with pytest.raises(ConfigError):
        select_network("mainnet", ("testnet",))


def test_node_map():
    nodes = {"127.0.0.1:50211": "0.0.3"}
    sel = select_network(json.dumps(nodes), SUPPORTED)
    assert not sel.is_named
    assert sel.is_local
    assert sel.nodes == nodes
    assert sel.relay_url == DEFAULT_LOCAL_RELAY


def test_empty_node_map_is_default():
    sel = select_network(None, SUPPORTED)
    assert sel.name is None
    assert sel.nodes == {}


@pytest.mark.parametrize("raw", ["[1, 2]", '{"127.0.0.1:50211": 3}', '{"a": "not-an-id"}'])
def test_bad_node_maps(raw):
    with pytest.raises(ConfigError):
        select_network(raw, SUPPORTED)


def test_relay_url_must_be_http():
    with pytest.raises(ConfigError):
        select_network("testnet", SUPPORTED, relay_url="ws://localhost:8546")


def test_load_config_local_defaults():
    cfg = load_config({"HEDERA_NETWORK": "local-node"}, dotenv=False)
    owner, spender, recipient = cfg.require_accounts()
    assert str(owner.account_id) == LOCAL_NODE_ACCOUNTS["owner"][0]
    assert spender.private_key == LOCAL_NODE_ACCOUNTS["spender"][1]
    assert recipient.signer().address
    assert cfg.network.relay_url == "http://localhost:7546"
    assert cfg.request_timeout == 30.0
    assert cfg.as_dict()["network"]["chain_id"] == 298


def test_load_config_overrides():
    env = {
        "HEDERA_NETWORK": "testnet",
        "RELAY_URL": "https://relay.example:7546",
        "CHAIN_ID": "0x128",
        "RELAY_TIMEOUT": "5.5",
        "RELAY_MAX_RETRIES": "0",
        "GAS_LIMIT": "400000",
        "OWNER_KEY": LOCAL_NODE_ACCOUNTS["owner"][1],
        "OWNER_ID": "0.0.77",
    }
    cfg = load_config(env, dotenv=False)
    assert cfg.network.relay_url == "https://relay.example:7546"
    assert cfg.network.chain_id == 0x128
    assert cfg.request_timeout == 5.5
    assert cfg.max_retries == 0
    assert cfg.gas_limit == 400_000
    assert str(cfg.owner.account_id) == "0.0.77"
    # remote networks get no dev-key defaults
    assert cfg.spender is None
    with pytest.raises(ConfigError) as ei:
        cfg.require_accounts()
    assert "SPENDER_KEY" in str(ei.value)


@pytest.mark.parametrize("name,value", [("CHAIN_ID", "abc"), ("RELAY_TIMEOUT", "soon"), ("OWNER_ID", "x")])
def test_load_config_bad_values(name, value):
    with pytest.raises(ConfigError):
        load_config({"HEDERA_NETWORK": "local-node", name: value}, dotenv=False)


def test_load_config_reads_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("HEDERA_NETWORK=previewnet\nGAS_LIMIT=123\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    # set-then-delete so teardown also removes what the .env file loads
    for name in ("HEDERA_NETWORK", "GAS_LIMIT"):
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("SUPPORTED_ENV", "previewnet")
    cfg = load_config()
    assert cfg.network.name == "previewnet"
    assert cfg.gas_limit == 123
