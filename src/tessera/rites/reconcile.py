"""
Rite Reconcile - Check an event-derived sum against contract state.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..augury.events import StateQuery
from ..errors import HarnessError
from .common import artifacts_option, fail, load_contract, open_session


@click.command()
@click.argument("address")
@click.option("--abi-name", required=True, help="Contract name for ABI loading")
@click.option("--event", default="Increment", show_default=True, help="Event name")
@click.option("--field", default="by", show_default=True, help="Event field to sum")
@click.option("--state", "state_fn", default="x", show_default=True, help="View function holding the aggregate")
@click.option("--from-block", required=True, type=int, help="Creation block of the contract")
@click.option("--chunk-size", default=None, type=int, help="Max blocks per eth_getLogs request")
@artifacts_option
@click.pass_context
def reconcile(
    ctx: click.Context,
    address: str,
    abi_name: str,
    event: str,
    field: str,
    state_fn: str,
    from_block: int,
    chunk_size: Optional[int],
    artifacts: Optional[Path],
) -> None:
    """
    Sum FIELD over every EVENT the contract at ADDRESS emitted and compare
    the total with STATE().
    """
    artifact = load_contract(abi_name, artifacts)

    with open_session(ctx, artifact.abi) as session:
        session.reconciler.chunk_size = chunk_size
        try:
            result = session.reconciler.reconcile(
                address, event, field, from_block, StateQuery(state_fn)
            )
        except HarnessError as exc:
            fail(str(exc))

    click.echo(f"  Events:   {result.event_count}")
    click.echo(f"  Computed: {result.computed}")
    click.echo(f"  Expected: {result.expected}")
    if result.matches:
        click.secho("MATCH: event log agrees with contract state", fg="green")
    else:
        click.secho("MISMATCH: event log disagrees with contract state", fg="red")
        ctx.exit(1)
