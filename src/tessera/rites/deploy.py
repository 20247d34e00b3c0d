"""
Rite Deploy - Deploy a compiled contract and wait for its address.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from .common import artifacts_option, load_contract, open_session, parse_args_json


@click.command()
@click.argument("name")
@click.option("--args", "args_json", default="[]", help="Constructor args as JSON array")
@artifacts_option
@click.pass_context
def deploy(ctx: click.Context, name: str, args_json: str, artifacts: Optional[Path]) -> None:
    """
    Deploy contract NAME from its build artifact.

    Prints the new address and the creation block, the starting point for
    later event queries.
    """
    args = parse_args_json(args_json)
    artifact = load_contract(name, artifacts)

    with open_session(ctx, artifact.abi) as session:
        click.echo(f"  Deployer: {session.account.address}")
        click.echo(f"  Network:  {session.config.endpoint.name}")
        click.echo("")

        interaction = session.orchestrator.deploy(artifact.bytecode, args)
        if not interaction.ok:
            click.secho(f"FAILED: {interaction.error}", fg="red")
            ctx.exit(1)

        click.secho("SUCCESS: Contract deployed!", fg="green")
        click.echo(f"  Address: {interaction.receipt.contract_address}")
        click.echo(f"  Block:   {interaction.receipt.block_number}")
        click.echo(f"  TX:      {interaction.handle}")
