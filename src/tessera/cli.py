"""
Tessera CLI

Command-line interface for the chain interaction & verification harness.

Every write goes through simulate -> submit -> confirm; event logs are
reconciled against contract state.

Commands:
  info           - Show endpoint and harness settings
  whoami         - Show the signing account
  deploy         - Deploy a compiled contract
  call           - Simulate, submit and confirm a contract call
  read           - Read contract state
  reconcile      - Compare an event-field sum with a state value
  counter-check  - Run the Counter conservation scenario
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click

from .rites.common import load_config, open_session
from .signet.eth import get_address


# ============ Constants ============

VERSION = "0.3.0"


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="tessera")
@click.option("--network", "-n", default=None, help="Network profile (default: NETWORK_NAME or ZKsyncOS)")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".env"),
    show_default=True,
    help=".env file with RPC_URL / PRIVATE_KEY",
)
@click.option("--verbose", "-v", count=True, help="-v for info logs, -vv for debug")
@click.pass_context
def cli(ctx: click.Context, network: Optional[str], env_file: Path, verbose: int) -> None:
    """Tessera command-line interface."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    obj = ctx.ensure_object(dict)
    obj.setdefault("transport", None)
    obj["network"] = network
    obj["env_file"] = env_file

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============ Identity ============


@cli.command()
@click.option("--balance", is_flag=True, help="Also query the account balance")
@click.pass_context
def whoami(ctx: click.Context, balance: bool) -> None:
    """Show the signing account."""
    config = load_config(ctx)
    address = get_address(config.private_key)
    click.echo(f"Address: {address}")
    if balance:
        with open_session(ctx) as session:
            wei = session.client.get_balance(address)
        currency = config.endpoint.currency
        click.echo(f"Balance: {wei / 10**currency.decimals} {currency.symbol}")


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Show endpoint and harness settings."""
    config = load_config(ctx)
    endpoint = config.endpoint
    timeout = "unbounded" if config.confirm_timeout is None else f"{config.confirm_timeout}s"

    click.echo(f"Tessera v{VERSION}")
    click.echo("")
    click.echo(f"  Network:        {endpoint.name}")
    click.echo(f"  Chain ID:       {endpoint.chain_id}")
    click.echo(f"  RPC URL:        {endpoint.url}")
    click.echo(f"  Currency:       {endpoint.currency.symbol} ({endpoint.currency.decimals} decimals)")
    click.echo(f"  Poll interval:  {config.poll_interval}s")
    click.echo(f"  Confirm wait:   {timeout}")


# ============ Rites ============

from .rites.deploy import deploy
from .rites.call import call, read
from .rites.reconcile import reconcile
from .rites.scenario import counter_check

cli.add_command(deploy)
cli.add_command(call)
cli.add_command(read)
cli.add_command(reconcile)
cli.add_command(counter_check)


def main() -> None:
    """Tessera CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
