"""Immutable records exchanged between the endpoint client and the harness."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..utils import hex_to_int


@dataclass(frozen=True)
class NativeCurrency:
    name: str = "Ether"
    symbol: str = "ETH"
    decimals: int = 18


@dataclass(frozen=True)
class Endpoint:
    """A JSON-RPC URL together with the chain identity it serves."""

    url: str
    chain_id: int
    name: str
    currency: NativeCurrency = field(default_factory=NativeCurrency)


@dataclass(frozen=True)
class PreparedCall:
    """A transaction pinned by a successful simulation.

    ``tx`` is the exact unsigned legacy transaction that ``submit`` signs.
    """

    sender: str
    target: str
    function: str
    args: tuple[Any, ...]
    tx: dict[str, Any]
    result: Any = None

    @property
    def nonce(self) -> int:
        return self.tx["nonce"]


@dataclass(frozen=True)
class Receipt:
    tx_hash: str
    block_number: int
    block_hash: str
    status: bool
    contract_address: Optional[str] = None
    gas_used: int = 0
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Receipt":
        # Pre-Byzantium receipts carry a state root instead of a status.
        status = payload.get("status")
        return cls(
            tx_hash=payload["transactionHash"],
            block_number=hex_to_int(payload["blockNumber"]),
            block_hash=payload["blockHash"],
            status=status is None or hex_to_int(status) == 1,
            contract_address=payload.get("contractAddress"),
            gas_used=hex_to_int(payload.get("gasUsed", "0x0")),
            raw=payload,
        )


@dataclass(frozen=True)
class EventRecord:
    address: str
    event: str
    args: dict[str, Any]
    block_number: int
    log_index: int
    tx_hash: str
    block_hash: str

    @property
    def position(self) -> tuple[int, int]:
        return (self.block_number, self.log_index)
