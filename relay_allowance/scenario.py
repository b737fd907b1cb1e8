# -*- coding: utf-8 -*-
"""
End-to-end allowance scenario.

1. create a token (treasury = owner) and associate spender and recipient
2. owner approves spender for the whole supply; allowance reads back the supply
3. spender moves the whole supply owner -> recipient with transferFrom
4. allowance(owner, spender) reads 0
5. spender tries transferFrom(owner, recipient, 1); it must fail and leave
   balances and allowance untouched

Each step is recorded as a StepResult. A failing step does not stop the run,
except that nothing runs once provisioning has failed. Errors from the
network or the ledger are recorded verbatim.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .accounts import Signer
from .erc20 import TokenClient
from .errors import RelayAllowanceError
from .provisioning import ProvisionedToken, Provisioner, TokenSpec

log = logging.getLogger(__name__)


@dataclass
class StepResult:
    name: str
    ok: bool
    detail: str = ""


@dataclass
class ScenarioReport:
    token_address: Optional[str] = None
    steps: List[StepResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.steps) and all(s.ok for s in self.steps)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "token_address": self.token_address,
            "steps": [{"name": s.name, "ok": s.ok, "detail": s.detail} for s in self.steps],
        }


class _Checks:
    def __init__(self) -> None:
        self.failures: List[str] = []

    def eq(self, label: str, got: Any, want: Any) -> None:
        if got != want:
            self.failures.append(f"{label}: expected {want!r}, got {got!r}")


def _step(report: ScenarioReport, name: str, fn: Callable[[_Checks], str]) -> bool:
    checks = _Checks()
    try:
        detail = fn(checks)
    except (RelayAllowanceError, TimeoutError) as exc:
        log.warning("step %s raised: %s", name, exc)
        report.steps.append(StepResult(name, False, f"{type(exc).__name__}: {exc}"))
        return False
    ok = not checks.failures
    if ok:
        log.info("step %s ok %s", name, detail)
    else:
        log.warning("step %s failed: %s", name, "; ".join(checks.failures))
    report.steps.append(StepResult(name, ok, "; ".join(checks.failures) or detail))
    return ok


def run_allowance_scenario(
    provisioner: Provisioner,
    owner: Signer,
    spender: Signer,
    recipient: Signer,
    spec: Optional[TokenSpec] = None,
) -> ScenarioReport:
    spec = spec or TokenSpec()
    supply = spec.initial_supply
    report = ScenarioReport()
    state: Dict[str, Any] = {}

    def provision(checks: _Checks) -> str:
        token: ProvisionedToken = provisioner.create_token(owner, spec)
        provisioner.associate(spender, token.address)
        provisioner.associate(recipient, token.address)
        report.token_address = token.address
        state["token"] = provisioner.client_for(owner, token.address)
        return f"token {token.address} ({token.token_id})"

    if not _step(report, "provision", provision):
        return report

    token: TokenClient = state["token"]

    def approve(checks: _Checks) -> str:
        receipt = token.approve(spender.address, supply)
        checks.eq("receipt status", receipt.status, 1)
        checks.eq("allowance", token.allowance(owner.address, spender.address), supply)
        return f"tx {receipt.tx_hash}"

    def transfer_from(checks: _Checks) -> str:
        to_before = token.balance_of(recipient.address)
        owner_before = token.balance_of(owner.address)
        receipt = token.connect(spender).transfer_from(owner.address, recipient.address, supply)
        checks.eq("owner balance before", owner_before, supply)
        checks.eq("owner balance after", token.balance_of(owner.address), 0)
        checks.eq("recipient balance before", to_before, 0)
        checks.eq("recipient balance after", token.balance_of(recipient.address), supply)
        return f"tx {receipt.tx_hash}"

    def allowance_spent(checks: _Checks) -> str:
        checks.eq("allowance", token.allowance(owner.address, spender.address), 0)
        return "allowance exhausted"

    def overspend_rejected(checks: _Checks) -> str:
        before = (
            token.balance_of(owner.address),
            token.balance_of(recipient.address),
            token.allowance(owner.address, spender.address),
        )
        rejected = ""
        try:
            token.connect(spender).transfer_from(owner.address, recipient.address, 1)
        except RelayAllowanceError as exc:
            rejected = f"{type(exc).__name__}: {exc}"
        if not rejected:
            checks.failures.append("transferFrom beyond the allowance succeeded")
        after = (
            token.balance_of(owner.address),
            token.balance_of(recipient.address),
            token.allowance(owner.address, spender.address),
        )
        checks.eq("state after rejected transferFrom", after, before)
        return f"rejected ({rejected})"

    _step(report, "approve", approve)
    _step(report, "transfer_from", transfer_from)
    _step(report, "allowance_after_transfer_from", allowance_spent)
    _step(report, "overspend_rejected", overspend_rejected)
    return report


__all__ = ["StepResult", "ScenarioReport", "run_allowance_scenario"]
