"""
Confirmation Poller - Waits for a submitted transaction to be mined.

Polls eth_getTransactionReceipt at a fixed interval. A null receipt means
"not yet" and is retried; anything else is final.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..errors import ConfirmationTimeout, Reverted
from ..nexus.models import Receipt
from ..nexus.rpc import EndpointClient

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5


class ConfirmationPoller:
    def __init__(
        self,
        client: EndpointClient,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self._sleep = sleep
        self._clock = clock

    def wait(
        self,
        handle: str,
        interval: float = DEFAULT_POLL_INTERVAL,
        timeout: Optional[float] = None,
    ) -> Receipt:
        """
        Wait for a transaction receipt.

        Args:
            handle: Transaction hash returned by submit/deploy
            interval: Seconds to sleep between polls
            timeout: Maximum wait in seconds; None waits indefinitely

        Returns:
            The receipt of a successful transaction

        Raises:
            ConfirmationTimeout: If no receipt appears within ``timeout``
            Reverted: If the transaction was mined with a failed status
        """
        if interval <= 0:
            raise ValueError(f"Polling interval must be positive: {interval}")

        deadline = None if timeout is None else self._clock() + timeout
        attempt = 0
        while True:
            attempt += 1
            receipt = self.client.get_receipt(handle)
            if receipt is not None:
                break
            logger.debug("receipt for %s not available (attempt %d)", handle, attempt)

            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    logger.warning("timed out waiting for %s after %d polls", handle, attempt)
                    raise ConfirmationTimeout(handle, timeout)
                self._sleep(min(interval, remaining))
            else:
                self._sleep(interval)

        if not receipt.status:
            logger.warning("%s reverted in block %d", handle, receipt.block_number)
            raise Reverted(receipt)

        logger.info("%s confirmed in block %d", handle, receipt.block_number)
        return receipt
