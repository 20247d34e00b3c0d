"""
Error taxonomy for the Tessera harness.

Every failure an interaction can end in has its own exception type so
callers can tell a would-revert dry run from a rejected submission or an
ambiguous timeout.
"""

from __future__ import annotations

from typing import Any, Optional


class HarnessError(RuntimeError):
    """Base class for all harness failures."""


class RpcError(HarnessError):
    """The endpoint answered with a JSON-RPC error object."""

    def __init__(
        self,
        method: str,
        code: Optional[int],
        message: str,
        data: Any = None,
    ) -> None:
        self.method = method
        self.code = code
        self.message = message
        self.data = data
        super().__init__(f"RPC error in {method} ({code}): {message}")


class SimulationFailed(HarnessError):
    """The dry run of a call would revert."""

    def __init__(self, target: str, function: str, reason: str) -> None:
        self.target = target
        self.function = function
        self.reason = reason
        super().__init__(f"Simulation of {function} on {target} failed: {reason}")


class SubmissionRejected(HarnessError):
    """The endpoint refused a signed transaction."""

    def __init__(self, target: Optional[str], message: str) -> None:
        self.target = target
        self.message = message
        where = target or "<create>"
        super().__init__(f"Submission to {where} rejected: {message}")


class Reverted(HarnessError):
    """The transaction was mined but its execution failed."""

    def __init__(self, receipt: Any) -> None:
        self.receipt = receipt
        super().__init__(
            f"Transaction {receipt.tx_hash} reverted in block {receipt.block_number}"
        )


class ConfirmationTimeout(HarnessError, TimeoutError):
    """No receipt appeared before the deadline.

    The outcome is ambiguous: the transaction may still be mined later.
    """

    def __init__(self, handle: str, timeout: float) -> None:
        self.handle = handle
        self.timeout = timeout
        super().__init__(f"Transaction {handle} not confirmed within {timeout}s")


class ReceiptUnavailable(HarnessError):
    """The endpoint failed while a submitted transaction was being polled.

    The transaction was accepted, so the caller decides whether to query
    ``handle`` again or give up.
    """

    def __init__(self, handle: str, target: Optional[str], message: str) -> None:
        self.handle = handle
        self.target = target
        self.message = message
        where = target or "<create>"
        super().__init__(f"Receipt for {handle} ({where}) unavailable: {message}")


class MalformedEvent(HarnessError):
    """A log entry could not be decoded under the requested event."""

    def __init__(self, log: dict[str, Any], reason: str) -> None:
        self.log = log
        self.reason = reason
        super().__init__(
            f"Malformed log at block {log.get('blockNumber')} "
            f"index {log.get('logIndex')}: {reason}"
        )


class ChainMismatch(HarnessError):
    """The node reports a different chain id than configured."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected chain id {expected}, endpoint reports {actual}")


class ReconciliationMismatch(HarnessError, AssertionError):
    """Aggregated events disagree with contract state."""

    def __init__(self, computed: Any, expected: Any) -> None:
        self.computed = computed
        self.expected = expected
        super().__init__(f"Event aggregate {computed} != contract state {expected}")
