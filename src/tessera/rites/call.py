"""
Rite Call - Execute or read a contract function.

``call`` runs the full simulate -> submit -> confirm sequence and reports
the terminal state. ``read`` is a plain eth_call.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..errors import HarnessError
from .common import artifacts_option, fail, load_contract, open_session, parse_args_json


@click.command()
@click.argument("address")
@click.argument("function")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--abi-name", required=True, help="Contract name for ABI loading")
@click.option("--value", default=0, type=int, help="Native value in wei")
@artifacts_option
@click.pass_context
def call(
    ctx: click.Context,
    address: str,
    function: str,
    args_json: str,
    abi_name: str,
    value: int,
    artifacts: Optional[Path],
) -> None:
    """Simulate, submit and confirm FUNCTION on the contract at ADDRESS."""
    args = parse_args_json(args_json)
    artifact = load_contract(abi_name, artifacts)

    with open_session(ctx, artifact.abi) as session:
        click.echo(f"  Sender:   {session.account.address}")
        click.echo(f"  Target:   {address}")
        click.echo(f"  Function: {function}")
        click.echo(f"  Args:     {args}")
        click.echo("")

        interaction = session.orchestrator.execute(address, function, args, value=value)
        click.echo(f"  States:   {' -> '.join(s.value for s in interaction.history)}")

        if not interaction.ok:
            click.secho(f"FAILED: {interaction.error}", fg="red")
            if interaction.handle:
                click.echo(f"  TX: {interaction.handle}")
            ctx.exit(1)

        click.secho("SUCCESS: Transaction confirmed!", fg="green")
        click.echo(f"  TX:    {interaction.handle}")
        click.echo(f"  Block: {interaction.receipt.block_number}")


@click.command()
@click.argument("address")
@click.argument("function")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--abi-name", required=True, help="Contract name for ABI loading")
@click.option("--block", default="latest", help="Block number or tag")
@artifacts_option
@click.pass_context
def read(
    ctx: click.Context,
    address: str,
    function: str,
    args_json: str,
    abi_name: str,
    block: str,
    artifacts: Optional[Path],
) -> None:
    """Read FUNCTION on the contract at ADDRESS."""
    args = parse_args_json(args_json)
    artifact = load_contract(abi_name, artifacts)
    block_id = int(block) if block.isdigit() else block

    with open_session(ctx, artifact.abi) as session:
        try:
            value = session.client.read(address, function, args, block=block_id)
        except (HarnessError, ValueError) as exc:
            fail(str(exc))
    click.echo(f"{function}: {value}")
