"""
Rite Counter-Check - The Counter conservation scenario.

Deploys a fresh Counter, calls incBy(i) for i = 1..N one at a time, then
checks that the Increment events sum to x().
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from ..augury.events import StateQuery
from ..errors import HarnessError
from .common import artifacts_option, fail, load_contract, open_session


@click.command("counter-check")
@click.option("--count", default=10, show_default=True, type=click.IntRange(min=1), help="Number of increments")
@click.option("--contract", "contract_name", default="Counter", show_default=True, help="Artifact name")
@artifacts_option
@click.pass_context
def counter_check(
    ctx: click.Context,
    count: int,
    contract_name: str,
    artifacts: Optional[Path],
) -> None:
    """Deploy Counter, increment it COUNT times and reconcile its events."""
    artifact = load_contract(contract_name, artifacts)

    with open_session(ctx, artifact.abi) as session:
        orchestrator = session.orchestrator
        try:
            address, from_block = orchestrator.deploy_and_confirm(artifact.bytecode)
            click.echo(f"  Deployed {contract_name} at {address} (block {from_block})")

            for i in range(1, count + 1):
                receipt = orchestrator.call_and_confirm(address, "incBy", [i])
                click.echo(f"  incBy({i}) confirmed in block {receipt.block_number}")

            result = session.reconciler.reconcile(
                address, "Increment", "by", from_block, StateQuery("x")
            )
        except HarnessError as exc:
            fail(str(exc))

    expected_total = count * (count + 1) // 2
    click.echo("")
    click.echo(f"  Events:   {result.event_count}")
    click.echo(f"  Sum(by):  {result.computed}")
    click.echo(f"  x():      {result.expected}")

    if result.matches and result.event_count == count and result.computed == expected_total:
        click.secho("PASS: event sum matches counter state", fg="green")
    else:
        click.secho(f"FAIL: expected {expected_total} from {count} events", fg="red")
        ctx.exit(1)
