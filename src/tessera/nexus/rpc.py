"""
Endpoint Client - JSON-RPC access to a remote execution endpoint.

Lightweight alternative to web3.py: uses httpx for HTTP, eth-abi for encoding
and eth-account for signing. Every method is a self-contained request, so one
client can be shared between threads.
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Optional, Sequence

import httpx
from eth_abi.exceptions import DecodingError
from eth_account.signers.local import LocalAccount

from ..errors import (
    ChainMismatch,
    MalformedEvent,
    RpcError,
    SimulationFailed,
    SubmissionRejected,
)
from ..utils import BlockId, checksum, hex_to_int, same_address, to_block_id, to_quantity
from .abi import (
    decode_event_log,
    decode_function_result,
    decode_revert_reason,
    encode_deploy_data,
    encode_function_call,
    event_entry,
    event_topic,
)
from .models import Endpoint, EventRecord, PreparedCall, Receipt

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_GAS_MULTIPLIER = 1.2
DEFAULT_DEPLOY_GAS = 3_000_000

# EIP-1474 / geth code for "execution reverted"
EXECUTION_REVERTED = 3


class EndpointClient:
    """
    Issues reads, simulations and raw submissions against one endpoint.

    Args:
        endpoint: URL and chain identity of the node
        abi: Default contract ABI for calls that don't pass their own
        gas_multiplier: Headroom applied to eth_estimateGas results
        request_timeout: HTTP timeout in seconds
        transport: Optional httpx transport (tests inject a MockTransport)
    """

    def __init__(
        self,
        endpoint: Endpoint,
        abi: Optional[Sequence[dict[str, Any]]] = None,
        *,
        gas_multiplier: float = DEFAULT_GAS_MULTIPLIER,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self.abi = list(abi or [])
        self.gas_multiplier = gas_multiplier
        self._ids = itertools.count(1)
        self._http = httpx.Client(timeout=request_timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "EndpointClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def request(self, method: str, params: list) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            Result field from the RPC response

        Raises:
            RpcError: If the endpoint returns an error object
            httpx.HTTPError: On transport failures
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }
        logger.debug("rpc %s %s", method, params)

        response = self._http.post(self.endpoint.url, json=payload)
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict):
            raise RpcError(method, None, f"malformed response: {data!r}")
        if "error" in data:
            error = data["error"] or {}
            raise RpcError(
                method,
                error.get("code"),
                error.get("message", "unknown error"),
                error.get("data"),
            )
        return data.get("result")

    # ------------------------------------------------------------------
    # Chain state
    # ------------------------------------------------------------------

    def chain_id(self) -> int:
        return hex_to_int(self.request("eth_chainId", []))

    def check_chain(self) -> int:
        actual = self.chain_id()
        if actual != self.endpoint.chain_id:
            raise ChainMismatch(self.endpoint.chain_id, actual)
        return actual

    def block_number(self) -> int:
        return hex_to_int(self.request("eth_blockNumber", []))

    def gas_price(self) -> int:
        return hex_to_int(self.request("eth_gasPrice", []))

    def nonce(self, address: str, block: BlockId = "pending") -> int:
        return hex_to_int(
            self.request("eth_getTransactionCount", [address, to_block_id(block)])
        )

    def get_balance(self, address: str, block: BlockId = "latest") -> int:
        return hex_to_int(self.request("eth_getBalance", [address, to_block_id(block)]))

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def read(
        self,
        target: str,
        function: str,
        args: Sequence[Any] = (),
        block: BlockId = "latest",
        abi: Optional[Sequence[dict[str, Any]]] = None,
    ) -> Any:
        """
        Read from a contract (eth_call) without side effects.

        Returns:
            Decoded return value(s); None for an empty result
        """
        abi = abi or self.abi
        calldata = encode_function_call(abi, function, args)
        result = self.request(
            "eth_call",
            [{"to": target, "data": calldata}, to_block_id(block)],
        )
        if result is None or result == "0x":
            return None
        return decode_function_result(abi, function, result)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def simulate(
        self,
        target: str,
        function: str,
        args: Sequence[Any],
        account: LocalAccount,
        value: int = 0,
        abi: Optional[Sequence[dict[str, Any]]] = None,
    ) -> PreparedCall:
        """
        Dry-run a state-changing call against the latest block and pin it.

        The returned PreparedCall fixes nonce, gas and gas price so that
        ``submit`` sends exactly what was simulated.

        Raises:
            SimulationFailed: If the call would revert, or the endpoint fails
                any of the lookups the pinned transaction needs
        """
        abi = abi or self.abi
        calldata = encode_function_call(abi, function, args)
        call = {
            "from": account.address,
            "to": target,
            "data": calldata,
            "value": to_quantity(value),
        }

        try:
            raw_result = self.request("eth_call", [call, "latest"])
            gas_estimate = hex_to_int(self.request("eth_estimateGas", [call]))
            nonce = self.nonce(account.address, "pending")
            gas_price = self.gas_price()
        except RpcError as exc:
            raise SimulationFailed(target, function, self._revert_reason(exc, abi)) from exc

        result = None
        if raw_result and raw_result != "0x":
            result = decode_function_result(abi, function, raw_result)

        tx = {
            "to": checksum(target),
            "data": calldata,
            "value": value,
            "nonce": nonce,
            "gas": int(gas_estimate * self.gas_multiplier),
            "gasPrice": gas_price,
            "chainId": self.endpoint.chain_id,
        }
        logger.debug("simulated %s on %s: nonce=%s gas=%s", function, target, tx["nonce"], tx["gas"])

        return PreparedCall(
            sender=account.address,
            target=target,
            function=function,
            args=tuple(args),
            tx=tx,
            result=result,
        )

    def submit(self, prepared: PreparedCall, account: LocalAccount) -> str:
        """
        Sign the prepared transaction as-is and send it.

        Returns:
            Transaction hash (0x-prefixed hex)

        Raises:
            SubmissionRejected: If the endpoint refuses the transaction
        """
        if not same_address(account.address, prepared.sender):
            raise SubmissionRejected(
                prepared.target,
                f"prepared for {prepared.sender}, signing account is {account.address}",
            )
        handle = self._send(prepared.tx, account, prepared.target)
        logger.info("submitted %s on %s: %s", prepared.function, prepared.target, handle)
        return handle

    def deploy(
        self,
        bytecode: str,
        args: Sequence[Any],
        account: LocalAccount,
        abi: Optional[Sequence[dict[str, Any]]] = None,
        gas_limit: Optional[int] = None,
    ) -> str:
        """
        Submit a contract creation transaction.

        Gas is estimated when ``gas_limit`` is not given; nodes that can't
        estimate creations fall back to a fixed limit.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        deploy_data = encode_deploy_data(bytecode, args, abi or self.abi)

        if gas_limit is None:
            try:
                estimate = self.request(
                    "eth_estimateGas", [{"from": account.address, "data": deploy_data}]
                )
                gas_limit = int(hex_to_int(estimate) * self.gas_multiplier)
            except RpcError as exc:
                logger.debug("creation gas estimate failed (%s), using default", exc.message)
                gas_limit = DEFAULT_DEPLOY_GAS

        tx: dict[str, Any] = {
            "data": deploy_data,
            "value": 0,
            "nonce": self.nonce(account.address, "pending"),
            "gas": gas_limit,
            "gasPrice": self.gas_price(),
            "chainId": self.endpoint.chain_id,
        }
        handle = self._send(tx, account, None)
        logger.info("submitted deployment: %s", handle)
        return handle

    def _send(self, tx: dict[str, Any], account: LocalAccount, target: Optional[str]) -> str:
        signed = account.sign_transaction(dict(tx))
        raw_tx = "0x" + signed.raw_transaction.hex().removeprefix("0x")
        try:
            handle = self.request("eth_sendRawTransaction", [raw_tx])
        except RpcError as exc:
            raise SubmissionRejected(target, exc.message) from exc
        if not handle:
            raise SubmissionRejected(target, "endpoint returned no transaction hash")
        return handle

    def _revert_reason(self, exc: RpcError, abi: Sequence[dict[str, Any]]) -> str:
        data = exc.data
        if isinstance(data, dict):
            data = data.get("data")
        if isinstance(data, str):
            reason = decode_revert_reason(data, abi)
            if reason:
                return reason
        return exc.message

    # ------------------------------------------------------------------
    # Receipts and logs
    # ------------------------------------------------------------------

    def get_receipt(self, handle: str) -> Optional[Receipt]:
        payload = self.request("eth_getTransactionReceipt", [handle])
        if payload is None:
            return None
        return Receipt.from_rpc(payload)

    def query_events(
        self,
        target: str,
        event: str,
        from_block: BlockId,
        to_block: Optional[BlockId] = None,
        strict: bool = True,
        abi: Optional[Sequence[dict[str, Any]]] = None,
        chunk_size: Optional[int] = None,
    ) -> list[EventRecord]:
        """
        Fetch decoded log entries of one event emitted by ``target``.

        Results are ordered by block, then log index.

        Args:
            target: Emitting contract address
            event: Event name in the ABI
            from_block: First block (inclusive)
            to_block: Last block (inclusive); defaults to latest
            strict: Raise MalformedEvent on undecodable logs instead of skipping them
            chunk_size: Split the range into requests of at most this many blocks

        Raises:
            MalformedEvent: In strict mode, if any log fails to decode
        """
        entry = event_entry(abi or self.abi, event)
        topic0 = event_topic(entry)

        raw_logs: list[dict[str, Any]] = []
        for start, end in self._ranges(from_block, to_block, chunk_size):
            raw_logs.extend(
                self.request(
                    "eth_getLogs",
                    [{
                        "address": target,
                        "topics": [topic0],
                        "fromBlock": start,
                        "toBlock": end,
                    }],
                ) or []
            )

        records = []
        for log in raw_logs:
            if log.get("removed"):
                continue
            try:
                args = decode_event_log(entry, log)
            except (ValueError, DecodingError) as exc:
                if strict:
                    raise MalformedEvent(log, str(exc)) from exc
                logger.debug("skipping undecodable %s log: %s", event, exc)
                continue
            records.append(
                EventRecord(
                    address=log["address"],
                    event=event,
                    args=args,
                    block_number=hex_to_int(log["blockNumber"]),
                    log_index=hex_to_int(log["logIndex"]),
                    tx_hash=log.get("transactionHash", ""),
                    block_hash=log.get("blockHash", ""),
                )
            )

        records.sort(key=lambda r: r.position)
        return records

    def _ranges(
        self,
        from_block: BlockId,
        to_block: Optional[BlockId],
        chunk_size: Optional[int],
    ) -> list[tuple[str, str]]:
        end: BlockId = "latest" if to_block is None else to_block
        if not chunk_size:
            return [(to_block_id(from_block), to_block_id(end))]
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive: {chunk_size}")
        if not isinstance(from_block, int):
            raise ValueError("chunk_size requires a numeric from_block")

        last = end if isinstance(end, int) else self.block_number()
        ranges = []
        start = from_block
        while start <= last:
            stop = min(start + chunk_size - 1, last)
            ranges.append((to_quantity(start), to_quantity(stop)))
            start = stop + 1
        return ranges
