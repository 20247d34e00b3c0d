"""
Interaction Orchestrator - Runs every write as simulate -> submit -> confirm.

Each logical write is an Interaction that moves through

    PREPARED -> SIMULATED -> SUBMITTED -> CONFIRMED

or ends in FAILED from any of those states. An Interaction runs once; a
retry is a new Interaction with a fresh simulation and nonce.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Sequence

import httpx
from eth_account.signers.local import LocalAccount

from ..errors import (
    ConfirmationTimeout,
    HarnessError,
    ReceiptUnavailable,
    Reverted,
    RpcError,
    SimulationFailed,
    SubmissionRejected,
)
from ..nexus.models import PreparedCall, Receipt
from ..nexus.rpc import EndpointClient
from ..utils import BlockId
from .events import EventReconciler, StateQuery
from .poller import DEFAULT_POLL_INTERVAL, ConfirmationPoller

logger = logging.getLogger(__name__)

CREATE = "<create>"


class State(str, Enum):
    PREPARED = "prepared"
    SIMULATED = "simulated"
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


_TRANSITIONS = {
    State.PREPARED: {State.SIMULATED, State.SUBMITTED, State.FAILED},
    State.SIMULATED: {State.SUBMITTED, State.FAILED},
    State.SUBMITTED: {State.CONFIRMED, State.FAILED},
    State.CONFIRMED: set(),
    State.FAILED: set(),
}


@dataclass
class Interaction:
    target: Optional[str]
    function: str
    args: tuple[Any, ...] = ()
    state: State = State.PREPARED
    history: list[State] = field(default_factory=lambda: [State.PREPARED])
    prepared: Optional[PreparedCall] = None
    handle: Optional[str] = None
    receipt: Optional[Receipt] = None
    error: Optional[HarnessError] = None

    @property
    def ok(self) -> bool:
        return self.state is State.CONFIRMED

    @property
    def done(self) -> bool:
        return self.state in (State.CONFIRMED, State.FAILED)

    def advance(self, state: State) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise ValueError(f"Illegal transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, error: HarnessError) -> "Interaction":
        self.error = error
        self.advance(State.FAILED)
        return self

    def unwrap(self) -> Receipt:
        """The confirmed receipt, or the terminal error raised."""
        if self.error is not None:
            raise self.error
        if self.receipt is None:
            raise RuntimeError(f"Interaction {self.function} is still {self.state.value}")
        return self.receipt


class Orchestrator:
    """
    Composes endpoint client, poller and reconciler for one account.

    Submissions are serialized: the account nonce is a single sequencing
    resource, so simulate+submit of one write completes before the next
    write can pin its nonce.
    """

    def __init__(
        self,
        client: EndpointClient,
        account: LocalAccount,
        *,
        poller: Optional[ConfirmationPoller] = None,
        reconciler: Optional[EventReconciler] = None,
        abi: Optional[Sequence[dict[str, Any]]] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        confirm_timeout: Optional[float] = None,
        settle_delay: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.account = account
        self.poller = poller or ConfirmationPoller(client)
        self.abi = abi
        self.reconciler = reconciler or EventReconciler(client, abi)
        self.poll_interval = poll_interval
        self.confirm_timeout = confirm_timeout
        self.settle_delay = settle_delay
        self._sleep = sleep
        self._submit_lock = threading.Lock()

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def execute(
        self,
        target: str,
        function: str,
        args: Sequence[Any] = (),
        value: int = 0,
    ) -> Interaction:
        """Run one write to a terminal state and return the Interaction."""
        interaction = Interaction(target=target, function=function, args=tuple(args))

        with self._submit_lock:
            try:
                interaction.prepared = self.client.simulate(
                    target, function, args, self.account, value=value, abi=self.abi
                )
            except SimulationFailed as exc:
                logger.warning("%s", exc)
                return interaction.fail(exc)
            interaction.advance(State.SIMULATED)

            try:
                interaction.handle = self.client.submit(interaction.prepared, self.account)
            except SubmissionRejected as exc:
                logger.warning("%s", exc)
                return interaction.fail(exc)
            interaction.advance(State.SUBMITTED)

        return self._confirm(interaction)

    def deploy(
        self,
        bytecode: str,
        args: Sequence[Any] = (),
        gas_limit: Optional[int] = None,
    ) -> Interaction:
        """Submit a creation transaction and wait for the new address."""
        interaction = Interaction(target=None, function=CREATE, args=tuple(args))

        with self._submit_lock:
            try:
                interaction.handle = self.client.deploy(
                    bytecode, args, self.account, abi=self.abi, gas_limit=gas_limit
                )
            except SubmissionRejected as exc:
                logger.warning("%s", exc)
                return interaction.fail(exc)
            interaction.advance(State.SUBMITTED)

        self._confirm(interaction, creation=True)
        if interaction.ok:
            interaction.target = interaction.receipt.contract_address
        return interaction

    def _confirm(self, interaction: Interaction, creation: bool = False) -> Interaction:
        try:
            interaction.receipt = self.poller.wait(
                interaction.handle,
                interval=self.poll_interval,
                timeout=self.confirm_timeout,
            )
        except Reverted as exc:
            interaction.receipt = exc.receipt
            return interaction.fail(exc)
        except ConfirmationTimeout as exc:
            return interaction.fail(exc)
        except (RpcError, httpx.HTTPError) as exc:
            logger.warning("polling %s failed: %s", interaction.handle, exc)
            error = ReceiptUnavailable(interaction.handle, interaction.target, str(exc))
            error.__cause__ = exc
            return interaction.fail(error)

        # A creation that left no code has nothing to target.
        if creation and not interaction.receipt.contract_address:
            logger.warning("creation %s produced no contract address", interaction.handle)
            return interaction.fail(Reverted(interaction.receipt))

        interaction.advance(State.CONFIRMED)
        return interaction

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def deploy_and_confirm(self, bytecode: str, args: Sequence[Any] = ()) -> tuple[str, int]:
        """
        Deploy a contract and wait for it.

        Returns:
            (contract address, creation block) for later calls and log queries
        """
        receipt = self.deploy(bytecode, args).unwrap()
        logger.info(
            "deployed %s in block %d", receipt.contract_address, receipt.block_number
        )
        if self.settle_delay > 0:
            self._sleep(self.settle_delay)
        return receipt.contract_address, receipt.block_number

    def call_and_confirm(self, address: str, function: str, args: Sequence[Any] = ()) -> Receipt:
        return self.execute(address, function, args).unwrap()

    def verify_sum(
        self,
        address: str,
        event: str,
        from_block: BlockId,
        state_query: StateQuery,
        field: str = "by",
    ) -> bool:
        return self.reconciler.reconcile(
            address, event, field, from_block, state_query
        ).matches
