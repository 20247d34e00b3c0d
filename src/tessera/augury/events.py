"""
Event Reconciler - Folds a contract's event log and checks it against state.

The canonical use is the conservation check: the sum of every
``Increment.by`` a Counter emitted since deployment equals its ``x``.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass
from functools import reduce
from typing import Any, Callable, Iterable, Optional, Sequence, TypeVar

from ..errors import ReconciliationMismatch
from ..nexus.models import EventRecord
from ..nexus.rpc import EndpointClient
from ..utils import BlockId

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StateQuery:
    """A view function call whose result is the authoritative aggregate."""

    function: str
    args: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Reconciliation:
    target: str
    event: str
    field: str
    computed: Any
    expected: Any
    event_count: int

    @property
    def matches(self) -> bool:
        return self.computed == self.expected

    def require(self) -> "Reconciliation":
        if not self.matches:
            raise ReconciliationMismatch(self.computed, self.expected)
        return self


def fold(
    events: Iterable[EventRecord],
    extract: Callable[[EventRecord], Any],
    combine: Callable[[T, Any], T],
    zero: T,
) -> T:
    """Left-fold the extracted field of every event, starting from ``zero``."""
    return reduce(lambda acc, event: combine(acc, extract(event)), events, zero)


def field_getter(name: str) -> Callable[[EventRecord], Any]:
    def extract(event: EventRecord) -> Any:
        try:
            return event.args[name]
        except KeyError:
            raise KeyError(f"{event.event} has no field {name!r}") from None

    return extract


class EventReconciler:
    def __init__(
        self,
        client: EndpointClient,
        abi: Optional[Sequence[dict[str, Any]]] = None,
        chunk_size: Optional[int] = None,
    ) -> None:
        self.client = client
        self.abi = abi
        self.chunk_size = chunk_size

    def collect(self, target: str, event: str, from_block: BlockId) -> list[EventRecord]:
        """All ``event`` records ``target`` emitted since ``from_block``, strictly decoded."""
        return self.client.query_events(
            target,
            event,
            from_block,
            strict=True,
            abi=self.abi,
            chunk_size=self.chunk_size,
        )

    def reconcile(
        self,
        target: str,
        event: str,
        field: str,
        from_block: BlockId,
        state_query: StateQuery,
    ) -> Reconciliation:
        """
        Sum ``field`` over the collected events and read the state to compare.

        Events are fetched before the state read, so the state is observed
        at the same or a later block than the last counted event.
        """
        events = self.collect(target, event, from_block)
        computed = fold(events, field_getter(field), operator.add, 0)
        expected = self.client.read(
            target, state_query.function, state_query.args, abi=self.abi
        )

        result = Reconciliation(
            target=target,
            event=event,
            field=field,
            computed=computed,
            expected=expected,
            event_count=len(events),
        )
        if result.matches:
            logger.info(
                "%s.%s sum over %d event(s) matches %s() = %s",
                event, field, len(events), state_query.function, expected,
            )
        else:
            logger.warning(
                "%s.%s sum %s does not match %s() = %s",
                event, field, computed, state_query.function, expected,
            )
        return result
