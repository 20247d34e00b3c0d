"""
Shared fixtures: an in-process fake node running the Counter contract.

The fake speaks just enough JSON-RPC for the harness and is wired in
through httpx.MockTransport, so no network or real chain is needed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest
import rlp
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import keccak, to_checksum_address

from tessera.augury.orchestrator import Orchestrator
from tessera.augury.poller import ConfirmationPoller
from tessera.nexus.models import Endpoint
from tessera.nexus.rpc import EndpointClient
from tessera.signet.eth import generate_eoa, get_account


# ============ Counter contract ============

COUNTER_ABI: list[dict[str, Any]] = [
    {
        "type": "event",
        "name": "Increment",
        "anonymous": False,
        "inputs": [{"name": "by", "type": "uint256", "indexed": False, "internalType": "uint256"}],
    },
    {
        "type": "function",
        "name": "inc",
        "inputs": [],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "incBy",
        "inputs": [{"name": "by", "type": "uint256", "internalType": "uint256"}],
        "outputs": [],
        "stateMutability": "nonpayable",
    },
    {
        "type": "function",
        "name": "x",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256", "internalType": "uint256"}],
        "stateMutability": "view",
    },
]

COUNTER_BYTECODE = "0x6080604052348015600e575f5ffd5b50"

SEL_INC = "0x" + keccak(text="inc()").hex()[:8]
SEL_INC_BY = "0x" + keccak(text="incBy(uint256)").hex()[:8]
SEL_X = "0x" + keccak(text="x()").hex()[:8]
INCREMENT_TOPIC = "0x" + keccak(text="Increment(uint256)").hex()

POSITIVE_REASON = "incBy: increment should be positive"


def _hex(data: bytes) -> str:
    return "0x" + data.hex()


def _block_arg(tag: Any, latest: int) -> int:
    if tag in (None, "latest", "pending", "safe", "finalized"):
        return latest
    if tag == "earliest":
        return 0
    return int(tag, 16)


class RpcFault(Exception):
    def __init__(self, code: int, message: str, data: Optional[str] = None) -> None:
        super().__init__(message)
        self.payload: dict[str, Any] = {"code": code, "message": message}
        if data is not None:
            self.payload["data"] = data


def _revert(reason: str) -> RpcFault:
    data = "0x08c379a0" + encode(["string"], [reason]).hex()
    return RpcFault(3, f"execution reverted: {reason}", data)


class FakeCounterChain:
    """
    One transaction per block; receipts become visible after
    ``receipt_delay`` unsuccessful polls.
    """

    def __init__(self, chain_id: int = 270, receipt_delay: int = 1) -> None:
        self.chain_id = chain_id
        self.receipt_delay = receipt_delay
        self.block = 0
        self.nonces: dict[str, int] = {}
        # address -> [(block, x)], appended on every change
        self.counters: dict[str, list[tuple[int, int]]] = {}
        self.receipts: dict[str, dict[str, Any]] = {}
        self.polls: dict[str, int] = {}
        self.logs: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.reject_next: Optional[str] = None
        self.revert_next = False
        # method -> RpcFault answered, or exception raised, on every call
        self.faults: dict[str, Exception] = {}
        self.transport = httpx.MockTransport(self.handle)

    # ------------------------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append(method)
        if method in self.faults:
            fault = self.faults[method]
            if not isinstance(fault, RpcFault):
                raise fault
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": fault.payload})
        handler = getattr(self, "_" + method, None)
        if handler is None:
            fault = RpcFault(-32601, f"method {method} not found")
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": fault.payload})
        try:
            result = handler(*params)
        except RpcFault as fault:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": fault.payload})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def block_hash(self, number: int) -> str:
        return _hex(keccak(number.to_bytes(32, "big")))

    def value_at(self, address: str, block: int) -> int:
        value = 0
        for changed_at, x in self.counters[address.lower()]:
            if changed_at <= block:
                value = x
        return value

    def inject_log(self, address: str, data: str, topics: Optional[list[str]] = None) -> None:
        self.logs.append({
            "address": address.lower(),
            "topics": topics if topics is not None else [INCREMENT_TOPIC],
            "data": data,
            "blockNumber": hex(self.block),
            "blockHash": self.block_hash(self.block),
            "transactionHash": _hex(keccak(data.encode())),
            "transactionIndex": "0x0",
            "logIndex": hex(99),
            "removed": False,
        })

    def _execute(self, target: str, data: str, block: int) -> tuple[str, Optional[int]]:
        """Returns (return data, increment) or raises a revert fault."""
        selector = data[:10]
        if selector == SEL_X:
            return _hex(encode(["uint256"], [self.value_at(target, block)])), None
        if selector == SEL_INC:
            return "0x", 1
        if selector == SEL_INC_BY:
            (by,) = decode(["uint256"], bytes.fromhex(data[10:]))
            if by == 0:
                raise _revert(POSITIVE_REASON)
            return "0x", by
        raise RpcFault(3, "execution reverted")

    # ------------------------------------------------------------------
    # RPC methods
    # ------------------------------------------------------------------

    def _eth_chainId(self) -> str:
        return hex(self.chain_id)

    def _eth_blockNumber(self) -> str:
        return hex(self.block)

    def _eth_gasPrice(self) -> str:
        return hex(1_000_000_000)

    def _eth_getTransactionCount(self, address: str, tag: str) -> str:
        return hex(self.nonces.get(address.lower(), 0))

    def _eth_getBalance(self, address: str, tag: str = "latest") -> str:
        return hex(10**18)

    def _eth_call(self, call: dict[str, Any], tag: str = "latest") -> str:
        target = call["to"].lower()
        if target not in self.counters:
            return "0x"
        result, _ = self._execute(target, call["data"], _block_arg(tag, self.block))
        return result

    def _eth_estimateGas(self, call: dict[str, Any], *rest: Any) -> str:
        if not call.get("to"):
            return hex(200_000)
        self._eth_call(call)
        return hex(50_000)

    def _eth_sendRawTransaction(self, raw_tx: str) -> str:
        if self.reject_next is not None:
            message, self.reject_next = self.reject_next, None
            raise RpcFault(-32000, message)

        raw = bytes.fromhex(raw_tx[2:])
        sender = Account.recover_transaction(raw_tx).lower()
        fields = rlp.decode(raw)
        nonce = int.from_bytes(fields[0], "big")
        to, data = fields[3], _hex(fields[5])

        expected = self.nonces.get(sender, 0)
        if nonce < expected:
            raise RpcFault(-32000, "nonce too low")
        if nonce > expected:
            raise RpcFault(-32000, "nonce too high")

        self.nonces[sender] = expected + 1
        self.block += 1
        tx_hash = _hex(keccak(raw))
        receipt: dict[str, Any] = {
            "transactionHash": tx_hash,
            "transactionIndex": "0x0",
            "blockNumber": hex(self.block),
            "blockHash": self.block_hash(self.block),
            "from": sender,
            "to": None,
            "contractAddress": None,
            "gasUsed": hex(21_000),
            "logs": [],
            "status": "0x1",
        }

        if not to:
            address = _hex(keccak(bytes.fromhex(sender[2:]) + nonce.to_bytes(8, "big"))[-20:])
            self.counters[address] = [(self.block, 0)]
            receipt["contractAddress"] = address
        else:
            target = _hex(to)
            receipt["to"] = target
            try:
                if self.revert_next:
                    self.revert_next = False
                    raise _revert("forced")
                _, by = self._execute(target, data, self.block)
            except RpcFault:
                receipt["status"] = "0x0"
            else:
                if by is not None:
                    current = self.value_at(target, self.block)
                    self.counters[target].append((self.block, current + by))
                    log = {
                        "address": target,
                        "topics": [INCREMENT_TOPIC],
                        "data": _hex(encode(["uint256"], [by])),
                        "blockNumber": hex(self.block),
                        "blockHash": self.block_hash(self.block),
                        "transactionHash": tx_hash,
                        "transactionIndex": "0x0",
                        "logIndex": "0x0",
                        "removed": False,
                    }
                    self.logs.append(log)
                    receipt["logs"] = [log]

        self.receipts[tx_hash] = receipt
        return tx_hash

    def _eth_getTransactionReceipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        if tx_hash not in self.receipts:
            return None
        self.polls[tx_hash] = self.polls.get(tx_hash, 0) + 1
        if self.polls[tx_hash] <= self.receipt_delay:
            return None
        return self.receipts[tx_hash]

    def _eth_getLogs(self, flt: dict[str, Any]) -> list[dict[str, Any]]:
        start = _block_arg(flt.get("fromBlock"), self.block)
        end = _block_arg(flt.get("toBlock"), self.block)
        address = flt.get("address", "").lower()
        topic0 = (flt.get("topics") or [None])[0]
        return [
            log for log in self.logs
            if log["address"] == address
            and start <= int(log["blockNumber"], 16) <= end
            and (topic0 is None or log["topics"][:1] == [topic0])
        ]


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# ============ Fixtures ============


@pytest.fixture()
def chain() -> FakeCounterChain:
    return FakeCounterChain()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def endpoint() -> Endpoint:
    return Endpoint(url="http://fake-node.test", chain_id=270, name="ZKsyncOS")


@pytest.fixture()
def private_key() -> str:
    return generate_eoa()[0]


@pytest.fixture()
def account(private_key: str):
    return get_account(private_key)


@pytest.fixture()
def client(chain: FakeCounterChain, endpoint: Endpoint):
    with EndpointClient(endpoint, COUNTER_ABI, transport=chain.transport) as c:
        yield c


@pytest.fixture()
def poller(client: EndpointClient, clock: FakeClock) -> ConfirmationPoller:
    return ConfirmationPoller(client, sleep=clock.sleep, clock=clock)


@pytest.fixture()
def orchestrator(client: EndpointClient, account, poller: ConfirmationPoller, clock: FakeClock) -> Orchestrator:
    return Orchestrator(
        client,
        account,
        poller=poller,
        abi=COUNTER_ABI,
        poll_interval=0.1,
        confirm_timeout=None,
        sleep=clock.sleep,
    )


@pytest.fixture()
def counter_artifacts(tmp_path: Path) -> Path:
    """A Hardhat-style project root holding a Counter artifact."""
    target = tmp_path / "project" / "artifacts" / "contracts" / "Counter.sol"
    target.mkdir(parents=True)
    artifact = {
        "contractName": "Counter",
        "abi": COUNTER_ABI,
        "bytecode": COUNTER_BYTECODE,
    }
    (target / "Counter.json").write_text(json.dumps(artifact), encoding="utf-8")
    return tmp_path / "project"
