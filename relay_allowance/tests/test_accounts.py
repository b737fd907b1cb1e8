from __future__ import annotations

import pytest
from eth_account import Account

from relay_allowance.accounts import (AccountId, Signer, is_zero_address,
                                      normalize_address, to_checksum,
                                      to_hex_address)
from relay_allowance.config import LOCAL_NODE_ACCOUNTS
from relay_allowance.errors import InvalidAddress


def test_long_zero_address_roundtrip():
    acct = AccountId.parse("0.0.1013")
    assert acct.to_solidity_address() == "00000000000000000000000000000000000003f5"
    assert AccountId.from_solidity_address("0x" + acct.to_solidity_address()) == acct
    assert str(acct) == "0.0.1013"


def test_long_zero_layout_uses_shard_and_realm():
    acct = AccountId(1, 2, 3)
    raw = acct.to_address_bytes()
    assert raw[:4] == (1).to_bytes(4, "big")
    assert raw[4:12] == (2).to_bytes(8, "big")
    assert raw[12:] == (3).to_bytes(8, "big")


@pytest.mark.parametrize("text", ["0.0", "a.b.c", "0.0.-1", ""])
def test_account_id_parse_rejects(text):
    with pytest.raises(ValueError):
        AccountId.parse(text)


def test_normalize_address_forms():
    raw = bytes(range(20))
    assert normalize_address(raw) == raw
    assert normalize_address(raw.hex()) == raw
    assert normalize_address("0x" + raw.hex().upper()) == raw
    assert to_hex_address(raw) == "0x" + raw.hex()
    assert to_checksum(raw).lower() == "0x" + raw.hex()
    assert is_zero_address("0x" + "00" * 20)

    with pytest.raises(InvalidAddress):
        normalize_address(b"\x00" * 21)
    with pytest.raises(InvalidAddress):
        normalize_address("0x1234")
    with pytest.raises(InvalidAddress):
        normalize_address(42)  # type: ignore[arg-type]


def test_signer_address_matches_eth_account():
    acct_id, key = LOCAL_NODE_ACCOUNTS["owner"]
    s = Signer(key, account_id=AccountId.parse(acct_id))
    assert s.address == Account.from_key(key).address
    assert s.address_bytes == normalize_address(s.address)
    assert len(s.compressed_public_key) == 33
    assert s.compressed_public_key[0] in (2, 3)
    assert s.describe() == {"address": s.address, "account_id": "0.0.1013"}


def test_signed_tx_recovers_to_signer():
    s = Signer.create()
    raw = s.sign_transaction(
        {
            "to": "0x" + "11" * 20,
            "data": "0x",
            "value": 0,
            "gas": 21_000,
            "gasPrice": 1,
            "nonce": 0,
            "chainId": 298,
        }
    )
    assert Account.recover_transaction(raw) == s.address
