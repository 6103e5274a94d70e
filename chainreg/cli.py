"""chainreg CLI — register author names and publish scoped packages."""

from __future__ import annotations

import dataclasses
import logging
import sys
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.table import Table

from chainreg import __version__
from chainreg.client.oracle import HttpOracle, OracleRejected
from chainreg.client.registry_client import RegistryClient, parse_package_name
from chainreg.client.transport import HttpLedger
from chainreg.config import Settings, load_wallet
from chainreg.crypto.derivation import DerivationError, author_address
from chainreg.errors import ConfigError, LedgerStateError, TransportError
from chainreg.registry.errors import RegistryError

console = Console()

# Failures an operation may report; their text is printed as-is.
FAILURES = (
    RegistryError,
    OracleRejected,
    TransportError,
    LedgerStateError,
    ConfigError,
    DerivationError,
)


def _fail(exc: Exception) -> NoReturn:
    console.print(str(exc), style="red", markup=False, highlight=False)
    sys.exit(1)


def _settings(ctx: click.Context) -> Settings:
    opts = ctx.obj["options"]
    settings = Settings.from_env(local_test=True if opts["local"] else None)
    overrides = {
        key: value
        for key, value in (
            ("oracle_url", opts["oracle_url"]),
            ("ledger_url", opts["ledger_url"]),
            ("wallet_path", opts["wallet"]),
        )
        if value
    }
    return dataclasses.replace(settings, **overrides)


def _client(ctx: click.Context) -> RegistryClient:
    """Return the RegistryClient for this invocation, building it on first use."""
    obj = ctx.obj
    if "client" not in obj:
        settings = _settings(ctx)
        wallet = load_wallet(settings.wallet_path)
        obj["client"] = RegistryClient(
            ledger=HttpLedger(settings.ledger_url, timeout=settings.http_timeout),
            oracle=HttpOracle(settings.oracle_url, timeout=settings.http_timeout),
            wallet=wallet,
            program_id=settings.program_id,
        )
    return obj["client"]


def _package(package: str) -> tuple[str, str]:
    try:
        return parse_package_name(package)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="PACKAGE") from exc


@click.group()
@click.version_option(version=__version__)
@click.option("--wallet", default=None, help="Wallet keypair file (default: $CHAINREG_WALLET)")
@click.option("--ledger-url", default=None, help="Ledger node URL")
@click.option("--oracle-url", default=None, help="GitHub oracle URL")
@click.option("--local", is_flag=True, help="Use the local test oracle")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr")
@click.pass_context
def main(ctx, wallet, ledger_url, oracle_url, local, verbose):
    """chainreg — a decentralized package registry.

    Claim your GitHub username as an author name, then publish packages
    under scopes you control.
    """
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["options"] = {
        "wallet": wallet,
        "ledger_url": ledger_url,
        "oracle_url": oracle_url,
        "local": local,
    }


# ── Packages ─────────────────────────────────────────────────────────


@main.command()
@click.argument("package")
@click.pass_context
def publish(ctx, package: str):
    """Publish PACKAGE (@scope/name) to the registry."""
    scope, name = _package(package)
    try:
        record = _client(ctx).publish(scope, name)
    except FAILURES as exc:
        _fail(exc)
    console.print(f"Published [cyan]{record.qualified_name}[/] by {record.authority}")


@main.command()
@click.argument("package")
@click.pass_context
def info(ctx, package: str):
    """Show the registry record of PACKAGE (@scope/name)."""
    scope, name = _package(package)
    try:
        record = _client(ctx).info(scope, name)
    except FAILURES as exc:
        _fail(exc)
    console.print(f"Scope: @{record.scope}")
    console.print(f"Name: {record.name}")
    console.print(f"Authority: {record.authority}")


# ── Authors ──────────────────────────────────────────────────────────


@main.command()
@click.argument("username")
@click.option("--pubkey", default=None, help="Key published in your GitHub bio (default: wallet key)")
@click.pass_context
def register(ctx, username: str, pubkey: Optional[str]):
    """Register USERNAME as an author, proven by your GitHub bio.

    Add the text "Solana Wallet: <your key>" to your GitHub bio first.
    """
    try:
        client = _client(ctx)
        record = client.register(username, pubkey=pubkey)
        address, _ = author_address(username, client.program_id)
    except FAILURES as exc:
        _fail(exc)
    console.print(f"Registered author [cyan]{record.name}[/] at {address}")
    console.print(f"Authority: {record.authority}")


@main.command()
@click.argument("username")
@click.pass_context
def unregister(ctx, username: str):
    """Close the author account of USERNAME and reclaim its deposit."""
    try:
        address = _client(ctx).unregister(username)
    except FAILURES as exc:
        _fail(exc)
    console.print(f"Unregistered author [cyan]{username}[/] ({address})")


@main.command()
@click.argument("username")
@click.pass_context
def author(ctx, username: str):
    """Show the author record of USERNAME."""
    try:
        client = _client(ctx)
        record = client.author(username)
        address, _ = author_address(username, client.program_id)
    except FAILURES as exc:
        _fail(exc)

    table = Table(title=f"Author {record.name}")
    table.add_column("Field", style="dim")
    table.add_column("Value", style="cyan")
    table.add_row("Name", str(record.name))
    table.add_row("Address", str(address))
    table.add_row("Authority", str(record.authority))
    console.print(table)


# ── Funds ────────────────────────────────────────────────────────────


@main.command()
@click.argument("lamports", type=click.IntRange(min=1))
@click.pass_context
def airdrop(ctx, lamports: int):
    """Request LAMPORTS for the wallet (development ledgers only)."""
    try:
        balance = _client(ctx).airdrop(lamports)
    except FAILURES as exc:
        _fail(exc)
    console.print(f"Balance: {balance} lamports")


# ── Servers ──────────────────────────────────────────────────────────


@main.command(name="serve-oracle")
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8081, type=int, help="Bind port")
def serve_oracle(host: str, port: int):
    """Run the GitHub oracle (needs KEYPAIR and GH_TOKEN)."""
    import uvicorn

    from chainreg.web.app import create_oracle_app

    try:
        app = create_oracle_app()
    except ConfigError as exc:
        _fail(exc)
    uvicorn.run(app, host=host, port=port)


@main.command(name="serve-ledger")
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", default=8899, type=int, help="Bind port")
def serve_ledger(host: str, port: int):
    """Run a ledger node backed by $CHAINREG_LEDGER_DIR."""
    import uvicorn

    from chainreg.web.app import create_ledger_app

    try:
        app = create_ledger_app()
    except ConfigError as exc:
        _fail(exc)
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
