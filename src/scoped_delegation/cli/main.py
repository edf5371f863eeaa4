"""CLI entry point for scoped-delegation.

Invoked as::

    scoped-delegation [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m scoped_delegation.cli.main

Commands
--------
create        Create and sign a root delegation
subdelegate   Narrow a delegation into a signed sub-delegation
transfer      Validate and redeem a token transfer through a delegation
scope         Print a human-readable summary of a delegation's caveats
revoke        Inspect, check or disable a delegation
hash          Print a delegation's hash and signing digest
version       Show version information

Signing commands read the private key from ``--private-key`` or
``PRIVATE_KEY``. Ledger commands talk to ``--rpc-url`` / ``RPC_URL``;
``--ledger-file`` selects an offline ledger persisted to a JSON file instead.
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional

import click
from rich.console import Console
from rich.table import Table

from scoped_delegation.config import NetworkConfig
from scoped_delegation.delegation.document import (
    Document,
    chain_from_document,
    from_document,
    load_document,
    meta_hash_matches,
    save_document,
    to_document,
)
from scoped_delegation.delegation.builder import TOKEN_METHODS
from scoped_delegation.delegation.hashing import delegation_hash_hex, signing_digest
from scoped_delegation.errors import CaveatViolationError, DelegationError, ScopeViolationError
from scoped_delegation.ledger.base import LedgerClient
from scoped_delegation.ledger.local import LocalLedger
from scoped_delegation.ledger.web3_client import Web3LedgerClient
from scoped_delegation.service import DelegationService
from scoped_delegation.signing.signer import LocalAccountSigner, recover_signer
from scoped_delegation.summary import summarize
from scoped_delegation.units import parse_duration

console = Console()

_STATUS_STYLES = {
    "active": "[green]active[/green]",
    "pending": "[yellow]pending[/yellow]",
    "expired": "[red]expired[/red]",
    "opaque": "[magenta]opaque[/magenta]",
    "undecodable": "[red]undecodable[/red]",
}


def _duration_callback(
    ctx: click.Context, param: click.Parameter, value: Optional[str]
) -> Optional[int]:
    if value is None:
        return None
    try:
        return parse_duration(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _private_key_option(func: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--private-key",
        envvar="PRIVATE_KEY",
        required=True,
        help="Hex private key of the acting account (or set PRIVATE_KEY).",
    )(func)


def _ledger_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--ledger-file",
        type=click.Path(dir_okay=False),
        default=None,
        help="Use an offline ledger persisted to this JSON file instead of RPC.",
    )(func)
    return click.option(
        "--rpc-url",
        envvar="RPC_URL",
        default=None,
        help="JSON-RPC endpoint of the target network (or set RPC_URL).",
    )(func)


def _restriction_options(func: Callable[..., Any]) -> Callable[..., Any]:
    func = click.option(
        "--max-calls",
        type=click.IntRange(min=1),
        default=None,
        help="Maximum number of redemptions (LimitedCallsEnforcer).",
    )(func)
    func = click.option(
        "--restrict-methods",
        is_flag=True,
        default=False,
        help="Only allow ERC-20 transfer and approve calls (AllowedMethodsEnforcer).",
    )(func)
    return click.option(
        "--recipient",
        default=None,
        help="Only address the delegate may transfer to (AllowedCalldataEnforcer).",
    )(func)


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="scoped-delegation")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Scoped ERC-7710 token delegations: create, narrow, redeem and revoke."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from scoped_delegation import __version__

    config = NetworkConfig.from_env()
    console.print(f"[bold]scoped-delegation[/bold] v{__version__}")
    console.print(f"  Network:           {config.chain_name} ({config.chain_id})")
    console.print(f"  DelegationManager: {config.delegation_manager}")
    console.print(f"  Token:             {config.token_symbol} {config.token_address}")


# ------------------------------------------------------------------
# create
# ------------------------------------------------------------------


@cli.command(name="create")
@click.option("--delegate", required=True, help="Address of the delegate (agent).")
@click.option("--amount", required=True, help="Maximum token amount, e.g. 1000 or 12.5.")
@click.option(
    "--expiry",
    required=True,
    callback=_duration_callback,
    help="Lifetime from now: 30s, 5m, 24h or 7d.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the delegation document to this file path.",
)
@_restriction_options
@_private_key_option
def create_command(
    delegate: str,
    amount: str,
    expiry: int,
    output: Optional[str],
    recipient: Optional[str],
    restrict_methods: bool,
    max_calls: Optional[int],
    private_key: str,
) -> None:
    """Create and sign a root delegation to DELEGATE."""
    config = NetworkConfig.from_env()
    try:
        service = DelegationService(config, _signer(private_key))
        delegation = service.create_root(
            delegate,
            amount,
            expiry,
            recipient=recipient,
            methods=TOKEN_METHODS if restrict_methods else None,
            max_calls=max_calls,
        )
    except (DelegationError, ValueError) as exc:
        _fail(exc)

    document = to_document(delegation, config)
    _emit_document(document, output)
    _print_created(document, config)


# ------------------------------------------------------------------
# subdelegate
# ------------------------------------------------------------------


@cli.command(name="subdelegate")
@click.option(
    "--parent",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the parent delegation document.",
)
@click.option("--subdelegate", required=True, help="Address of the sub-delegate.")
@click.option("--amount", required=True, help="Maximum token amount for the sub-delegate.")
@click.option(
    "--expiry",
    required=True,
    callback=_duration_callback,
    help="Lifetime from now: 30s, 5m, 24h or 7d.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write the sub-delegation document to this file path.",
)
@_restriction_options
@_private_key_option
def subdelegate_command(
    parent: str,
    subdelegate: str,
    amount: str,
    expiry: int,
    output: Optional[str],
    recipient: Optional[str],
    restrict_methods: bool,
    max_calls: Optional[int],
    private_key: str,
) -> None:
    """Narrow the delegation in PARENT into a signed sub-delegation.

    The requested scope is checked against the parent's caveats before
    anything is signed.
    """
    config = NetworkConfig.from_env()
    parent_document = _read_document(parent)
    try:
        parent_delegation = from_document(parent_document)
        service = DelegationService(config, _signer(private_key))
        delegation = service.create_subdelegation(
            parent_delegation,
            subdelegate,
            amount,
            expiry,
            recipient=recipient,
            methods=TOKEN_METHODS if restrict_methods else None,
            max_calls=max_calls,
        )
    except ScopeViolationError as exc:
        console.print("[bold]Scope check against parent:[/bold]")
        _print_violations([violation.message for violation in exc.violations])
        sys.exit(1)
    except (DelegationError, ValueError, KeyError) as exc:
        _fail(exc)
    console.print("  [green]PASS[/green]  Requested scope is within the parent's scope.")

    document = to_document(delegation, config, parent_document=parent_document)
    _emit_document(document, output)
    _print_created(document, config)


# ------------------------------------------------------------------
# transfer
# ------------------------------------------------------------------


@cli.command(name="transfer")
@click.option(
    "--delegation",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the delegation document to redeem.",
)
@click.option("--to", "recipient", required=True, help="Recipient address.")
@click.option("--amount", required=True, help="Token amount to transfer.")
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Validate and encode locally without contacting any ledger.",
)
@click.option(
    "--simulate",
    is_flag=True,
    default=False,
    help="Simulate the redemption on the ledger without submitting it.",
)
@_private_key_option
@_ledger_options
def transfer_command(
    delegation: str,
    recipient: str,
    amount: str,
    dry_run: bool,
    simulate: bool,
    private_key: str,
    rpc_url: Optional[str],
    ledger_file: Optional[str],
) -> None:
    """Validate and redeem a token transfer through a delegation chain."""
    config = _config(rpc_url)
    document = _read_document(delegation)
    try:
        signer = _signer(private_key)
        chain = chain_from_document(document)
        ledger = None if dry_run else _open_ledger(config, signer, ledger_file)
        service = DelegationService(config, signer, ledger)

        outcome = service.transfer(
            chain, recipient, amount, dry_run=dry_run, simulate_only=simulate
        )
    except CaveatViolationError as exc:
        console.print(f"[bold]Caveat checks ({len(chain)} link(s)):[/bold]")
        _print_violations([v.message for v in exc.violations])
        sys.exit(1)
    except (DelegationError, ValueError, KeyError) as exc:
        _fail(exc)

    console.print(f"[bold]Caveat checks ({len(chain)} link(s)):[/bold]")
    console.print("  [green]PASS[/green]  Transfer satisfies every caveat in the chain.")
    contexts, modes, executions = outcome.call.encoded_arguments()
    console.print(f"  Permission context: {len(contexts[0])} bytes")
    console.print(f"  Mode:               0x{modes[0].hex()}")
    console.print(f"  Execution:          0x{executions[0].hex()}")

    if dry_run:
        console.print("\n[yellow]Dry run:[/yellow] nothing was sent to a ledger.")
        return
    if outcome.simulation is not None:
        console.print("  [green]PASS[/green]  Simulation succeeded.")
    if outcome.receipt is None:
        console.print("\n[yellow]Simulation only:[/yellow] redemption was not submitted.")
        return

    _save_ledger(ledger, ledger_file)
    receipt = outcome.receipt
    console.print(
        f"\n  Transaction: [bold]{receipt.transaction_hash}[/bold] ([green]confirmed[/green])"
    )
    console.print(f"  Block:       {receipt.block_number}")


# ------------------------------------------------------------------
# scope
# ------------------------------------------------------------------


@cli.command(name="scope")
@click.option(
    "--delegation",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the delegation document to inspect.",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show raw caveat terms.")
def scope_command(delegation: str, verbose: bool) -> None:
    """Print a human-readable summary of a delegation's scope."""
    config = NetworkConfig.from_env()
    document = _read_document(delegation)
    try:
        summary = summarize(from_document(document), config)
    except (DelegationError, ValueError, KeyError) as exc:
        _fail(exc)

    console.print(f"[bold]Delegation[/bold] {summary.delegation_hash}")
    console.print(f"  Delegator: {summary.delegator}")
    console.print(f"  Delegate:  {summary.delegate}")
    console.print(f"  Salt:      {summary.salt}")
    console.print(f"  Signed:    {'yes' if summary.signed else 'no'}")
    if summary.is_root:
        console.print("  Authority: root")
    else:
        console.print(f"  Authority: {summary.parent_hash}")

    table = Table(title="Caveats", show_header=True)
    table.add_column("#", justify="right")
    table.add_column("Enforcer", style="cyan")
    table.add_column("Details")
    table.add_column("Status", justify="center")
    if verbose:
        table.add_column("Terms")
    for caveat in summary.caveats:
        row = [
            str(caveat.index),
            caveat.name,
            "\n".join(caveat.details),
            _STATUS_STYLES.get(caveat.status, caveat.status),
        ]
        if verbose:
            row.append(caveat.terms_hex)
        table.add_row(*row)
    console.print(table)

    if "_chain" in document:
        try:
            chain = chain_from_document(document)
            root_hash = delegation_hash_hex(chain.root)
            console.print(f"\n  Chain: {len(chain)} link(s) up to root {root_hash}")
        except DelegationError as exc:
            console.print(f"\n  [red]Chain broken:[/red] {exc}")
    if "_meta" in document and not meta_hash_matches(document):
        console.print("  [yellow]Warning:[/yellow] recorded delegationHash does not match.")
    for warning in summary.warnings:
        console.print(f"  [yellow]Warning:[/yellow] {warning}")


# ------------------------------------------------------------------
# revoke
# ------------------------------------------------------------------


@cli.command(name="revoke")
@click.option(
    "--delegation",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the delegation document to revoke.",
)
@click.option("--check", is_flag=True, default=False, help="Query the current revocation status.")
@click.option(
    "--execute",
    is_flag=True,
    default=False,
    help="Submit disableDelegation; without it only the details are shown.",
)
@_private_key_option
@_ledger_options
def revoke_command(
    delegation: str,
    check: bool,
    execute: bool,
    private_key: str,
    rpc_url: Optional[str],
    ledger_file: Optional[str],
) -> None:
    """Disable a delegation and, with it, every sub-delegation derived from it."""
    config = _config(rpc_url)
    document = _read_document(delegation)
    try:
        signer = _signer(private_key)
        target = from_document(document)
        ledger = (
            _open_ledger(config, signer, ledger_file) if (check or execute) else None
        )
        service = DelegationService(config, signer, ledger)

        console.print(f"[bold]Delegation[/bold] {delegation_hash_hex(target)}")
        console.print(f"  Delegator: {target.delegator}")
        console.print(f"  Delegate:  {target.delegate}")

        if check:
            if service.is_revoked(target):
                console.print("  Status:    [red]REVOKED[/red]")
                return
            console.print("  Status:    [green]ACTIVE[/green]")

        if not execute:
            console.print(
                "\n[yellow]Revocation is irreversible and invalidates every "
                "sub-delegation derived from this one.[/yellow]"
            )
            console.print("Run again with --execute to disable it.")
            return

        receipt = service.revoke(target)
    except (DelegationError, ValueError, KeyError) as exc:
        _fail(exc)

    _save_ledger(ledger, ledger_file)
    console.print(f"[red]Revoked[/red] delegation in tx [bold]{receipt.transaction_hash}[/bold]")


# ------------------------------------------------------------------
# hash
# ------------------------------------------------------------------


@cli.command(name="hash")
@click.option(
    "--delegation",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="Path to the delegation document.",
)
def hash_command(delegation: str) -> None:
    """Print the delegation hash, its signing digest and the recovered signer."""
    config = NetworkConfig.from_env()
    document = _read_document(delegation)
    try:
        target = from_document(document)
    except (ValueError, KeyError) as exc:
        _fail(exc)

    console.print(f"  Delegation hash: {delegation_hash_hex(target)}")
    console.print(f"  Signing digest:  0x{signing_digest(target, config).hex()}")
    if not target.is_signed:
        console.print("  Signer:          [yellow]unsigned[/yellow]")
        return
    try:
        signer = recover_signer(target, config)
    except ValueError as exc:
        _fail(exc)
    if signer == target.delegator:
        console.print(f"  Signer:          [green]{signer}[/green] (delegator)")
    else:
        console.print(f"  Signer:          [red]{signer}[/red] (expected {target.delegator})")
        sys.exit(1)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    sys.exit(1)


def _print_violations(messages: list[str]) -> None:
    for message in messages:
        console.print(f"  [red]FAIL[/red]  {message}")


def _config(rpc_url: Optional[str]) -> NetworkConfig:
    config = NetworkConfig.from_env()
    if rpc_url:
        config = config.model_copy(update={"rpc_url": rpc_url})
    return config


def _signer(private_key: str) -> LocalAccountSigner:
    try:
        return LocalAccountSigner.from_key(private_key)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid private key: {exc}") from exc


def _read_document(path: str) -> Document:
    try:
        return load_document(path)
    except (OSError, ValueError) as exc:
        console.print(f"[red]Error:[/red] Could not read delegation file {path}: {exc}")
        sys.exit(1)


def _emit_document(document: Document, output: Optional[str]) -> None:
    if output:
        save_document(document, output)
        console.print(f"[green]Delegation written to[/green] {output}")
    else:
        click.echo(json.dumps(document, indent=2))


def _print_created(document: Document, config: NetworkConfig) -> None:
    meta = document["_meta"]
    console.print(f"\n  Hash:      [bold]{meta['delegationHash']}[/bold]")
    console.print(f"  Delegator: {document['delegator']}")
    console.print(f"  Delegate:  {document['delegate']}")
    console.print(f"  Caveats:   {len(document['caveats'])}")
    if "parentHash" in meta:
        console.print(f"  Parent:    {meta['parentHash']}")
    console.print(f"  Network:   {config.chain_name} ({config.chain_id})")


def _open_ledger(
    config: NetworkConfig, signer: LocalAccountSigner, ledger_file: Optional[str]
) -> LedgerClient:
    """Return the offline ledger when a ledger file is given, else an RPC client.

    The RPC client connects to ``config.rpc_url``, which defaults to the public
    Base Sepolia endpoint when neither ``--rpc-url`` nor ``RPC_URL`` is set.
    """
    if ledger_file:
        return _load_ledger(config, ledger_file)
    return Web3LedgerClient.from_config(config, signer.account)


def _load_ledger(config: NetworkConfig, ledger_file: str) -> LocalLedger:
    """Return a LocalLedger, restored from *ledger_file* when it exists."""
    ledger = LocalLedger(config)
    if Path(ledger_file).exists():
        try:
            data: dict[str, object] = json.loads(Path(ledger_file).read_text(encoding="utf-8"))
            ledger.restore(data)
        except (OSError, ValueError) as exc:
            console.print(f"[yellow]Warning:[/yellow] Could not load ledger file: {exc}")
    return ledger


def _save_ledger(ledger: Optional[LedgerClient], ledger_file: Optional[str]) -> None:
    """Persist LocalLedger state to a JSON file."""
    if not ledger_file or not isinstance(ledger, LocalLedger):
        return
    Path(ledger_file).write_text(json.dumps(ledger.snapshot(), indent=2), encoding="utf-8")


if __name__ == "__main__":
    cli()
