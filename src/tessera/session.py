"""
Session - Wires one account and one endpoint into a ready harness.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import httpx
from eth_account.signers.local import LocalAccount

from .augury.events import EventReconciler
from .augury.orchestrator import Orchestrator
from .augury.poller import ConfirmationPoller
from .config import HarnessConfig
from .nexus.rpc import EndpointClient
from .signet.eth import get_account


@dataclass
class Session:
    config: HarnessConfig
    account: LocalAccount
    client: EndpointClient
    poller: ConfirmationPoller
    reconciler: EventReconciler
    orchestrator: Orchestrator

    @classmethod
    def open(
        cls,
        config: HarnessConfig,
        abi: Optional[Sequence[dict[str, Any]]] = None,
        *,
        transport: Optional[httpx.BaseTransport] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> "Session":
        account = get_account(config.private_key)
        client = EndpointClient(
            config.endpoint,
            abi,
            gas_multiplier=config.gas_multiplier,
            request_timeout=config.request_timeout,
            transport=transport,
        )
        sleep_kwargs = {} if sleep is None else {"sleep": sleep}
        poller = ConfirmationPoller(client, **sleep_kwargs)
        reconciler = EventReconciler(client, abi)
        orchestrator = Orchestrator(
            client,
            account,
            poller=poller,
            reconciler=reconciler,
            abi=abi,
            poll_interval=config.poll_interval,
            confirm_timeout=config.confirm_timeout,
            settle_delay=config.settle_delay,
            **sleep_kwargs,
        )
        return cls(config, account, client, poller, reconciler, orchestrator)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
