from __future__ import annotations

import threading
from typing import Dict, List

import pytest

from relay_allowance.erc20 import AssociationRegistry, LocalTokenClient, TokenClient
from relay_allowance.errors import InsufficientAllowance, TokenNotAssociated
from relay_allowance.ledger import EVT_APPROVAL, EVT_TRANSFER, TokenLedger

TOKEN = b"\x00" * 16 + (1001).to_bytes(4, "big")


@pytest.fixture
def registry(addrs: Dict[str, bytes]) -> AssociationRegistry:
    reg = AssociationRegistry()
    for name in ("treasury", "alice", "bob"):
        assert reg.associate(addrs[name], TOKEN) is True
    return reg


def test_registry_reports_duplicates(registry: AssociationRegistry, addrs: Dict[str, bytes]):
    assert registry.associate(addrs["alice"], TOKEN) is False
    assert registry.is_associated(addrs["bob"], TOKEN)
    assert not registry.is_associated(addrs["carol"], TOKEN)
    assert list(registry.tokens_of(addrs["alice"])) == [TOKEN]


def test_local_client_flow(ledger: TokenLedger, registry: AssociationRegistry, addrs: Dict[str, bytes]):
    owner = LocalTokenClient(ledger, TOKEN, addrs["treasury"], registry)
    assert isinstance(owner, TokenClient)

    receipt = owner.approve(addrs["alice"], 300)
    assert receipt.ok
    assert receipt.tx_hash.startswith("0x") and len(receipt.tx_hash) == 66
    assert [e.name for e in receipt.events] == [EVT_APPROVAL]

    spender = owner.connect(addrs["alice"])
    assert spender.address.lower() == "0x" + addrs["alice"].hex()
    receipt = spender.transfer_from(addrs["treasury"], addrs["bob"], 300)
    assert [e.name for e in receipt.events] == [EVT_TRANSFER]
    assert owner.balance_of(addrs["bob"]) == 300
    assert owner.allowance(addrs["treasury"], addrs["alice"]) == 0

    with pytest.raises(InsufficientAllowance):
        spender.transfer_from(addrs["treasury"], addrs["bob"], 1)


def test_local_client_requires_association(ledger: TokenLedger, registry: AssociationRegistry, addrs: Dict[str, bytes]):
    owner = LocalTokenClient(ledger, TOKEN, addrs["treasury"], registry)
    before = len(ledger.events)
    with pytest.raises(TokenNotAssociated):
        owner.transfer(addrs["carol"], 1)
    assert len(ledger.events) == before

    # without a registry there is no association rule
    LocalTokenClient(ledger, TOKEN, addrs["treasury"]).transfer(addrs["carol"], 1)
    assert ledger.balance_of(addrs["carol"]) == 1


def test_concurrent_receipts_carry_only_their_own_events(
    ledger: TokenLedger, registry: AssociationRegistry, addrs: Dict[str, bytes]
):
    callers = [addrs["treasury"], addrs["alice"], addrs["bob"], addrs["carol"]]
    spender = bytes.fromhex("ab" * 20)
    receipts: Dict[bytes, List] = {c: [] for c in callers}
    start = threading.Barrier(len(callers))

    def approve_many(caller: bytes) -> None:
        client = LocalTokenClient(ledger, TOKEN, caller, registry)
        start.wait()
        for amount in range(1, 301):
            receipts[caller].append((amount, client.approve(spender, amount)))

    workers = [threading.Thread(target=approve_many, args=(c,)) for c in callers]
    for w in workers:
        w.start()
    for w in workers:
        w.join()

    for caller, sent in receipts.items():
        assert len(sent) == 300
        for amount, receipt in sent:
            assert [e.name for e in receipt.events] == [EVT_APPROVAL]
            (ev,) = receipt.events
            assert ev.args["owner"] == caller
            assert ev.args["value"] == amount
        assert ledger.allowance(caller, spender) == 300
    assert len({r.tx_hash for sent in receipts.values() for _, r in sent}) == 1_200
