from __future__ import annotations

"""
relay_allowance.cli
-------------------

Command line entry points.

Examples
--------
# Show which network and relay the environment selects
relay-allowance network

# Long-zero EVM address of an account id
relay-allowance address 0.0.1013

# Run the allowance scenario in-process (no network)
relay-allowance scenario --target local

# Run it against the relay picked by HEDERA_NETWORK / RELAY_URL, JSON report
relay-allowance scenario --target relay --json

Exit codes: 0 scenario passed, 1 a step failed, 2 bad configuration.
"""

import json
import logging
from enum import Enum
from typing import NoReturn

import typer

from .accounts import AccountId
from .config import load_config
from .errors import ConfigError, RelayAllowanceError
from .provisioning import LocalProvisioner, RelayProvisioner, TokenSpec
from .rpc import RpcClient
from .scenario import ScenarioReport, run_allowance_scenario
from .version import __version__

log = logging.getLogger(__name__)

app = typer.Typer(
    name="relay-allowance",
    add_completion=False,
    no_args_is_help=True,
    help="ERC-20 allowance checks for HTS tokens, locally or through a Hedera JSON-RPC relay.",
)


class Target(str, Enum):
    local = "local"
    relay = "relay"


# -------------------- utils --------------------


def _fail_config(exc: Exception) -> NoReturn:
    typer.secho(f"config error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(2)


def _print_report(report: ScenarioReport, json_out: bool) -> None:
    if json_out:
        typer.echo(json.dumps(report.as_dict(), indent=2, sort_keys=True))
        return
    typer.secho(f"token: {report.token_address or '-'}", bold=True)
    for step in report.steps:
        mark = typer.style("ok  ", fg=typer.colors.GREEN) if step.ok else typer.style("FAIL", fg=typer.colors.RED)
        typer.echo(f"  {mark} {step.name}: {step.detail}")
    typer.secho("PASSED" if report.ok else "FAILED", bold=True)


def _run_local(spec: TokenSpec) -> ScenarioReport:
    prov = LocalProvisioner()
    owner = prov.create_account(AccountId(0, 0, 1013))
    spender = prov.create_account(AccountId(0, 0, 1014))
    recipient = prov.create_account(AccountId(0, 0, 1015))
    return run_allowance_scenario(prov, owner, spender, recipient, spec)


def _run_relay(spec: TokenSpec) -> ScenarioReport:
    try:
        cfg = load_config()
        owner, spender, recipient = cfg.require_accounts()
    except ConfigError as exc:
        _fail_config(exc)
    log.info("relay %s chain_id=%d", cfg.network.relay_url, cfg.network.chain_id)
    with RpcClient(
        cfg.network.relay_url, timeout=cfg.request_timeout, max_retries=cfg.max_retries
    ) as rpc:
        prov = RelayProvisioner(rpc, cfg)
        return run_allowance_scenario(
            prov, owner.signer(), spender.signer(), recipient.signer(), spec
        )


# -------------------- commands --------------------


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("version")
def cmd_version() -> None:
    typer.echo(__version__)


@app.command("network")
def cmd_network() -> None:
    """Print the selected network, relay URL, chain id and account addresses as JSON."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        _fail_config(exc)
    typer.echo(json.dumps(cfg.as_dict(), indent=2, sort_keys=True))


@app.command("address")
def cmd_address(account_id: str = typer.Argument(..., help="Entity id, e.g. 0.0.1013")) -> None:
    """Long-zero EVM address of ACCOUNT_ID."""
    try:
        acct = AccountId.parse(account_id)
    except ValueError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    typer.echo("0x" + acct.to_solidity_address())


@app.command("scenario")
def cmd_scenario(
    target: Target = typer.Option(Target.local, "--target", help="local (in-process) or relay."),
    supply: int = typer.Option(100, "--supply", help="Initial supply credited to the owner."),
    decimals: int = typer.Option(3, "--decimals"),
    name: str = typer.Option("ffff", "--name"),
    symbol: str = typer.Option("F", "--symbol"),
    json_out: bool = typer.Option(False, "--json", help="Output the report as JSON."),
) -> None:
    """Create a token, approve, transferFrom the whole allowance, then overspend by one."""
    try:
        spec = TokenSpec(name=name, symbol=symbol, decimals=decimals, initial_supply=supply)
    except (ValueError, RelayAllowanceError) as exc:
        _fail_config(exc)

    report = _run_relay(spec) if target is Target.relay else _run_local(spec)
    _print_report(report, json_out)
    if not report.ok:
        raise typer.Exit(1)


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
