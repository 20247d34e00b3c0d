"""
ABI Loader and Codec - Loads contract artifacts and encodes/decodes calls and logs.

Artifacts come from the toolchain's build output, either Hardhat
(artifacts/contracts/<Name>.sol/<Name>.json) or Foundry
(out/<Name>.sol/<Name>.json). Encoding goes through eth-abi.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError

from ..utils import bytes_to_hex, hex_to_bytes, keccak_hex


# Solidity's builtin revert payloads
ERROR_SELECTOR = "0x08c379a0"  # Error(string)
PANIC_SELECTOR = "0x4e487b71"  # Panic(uint256)

_ARTIFACT_LAYOUTS = (
    ("artifacts", "contracts"),  # Hardhat
    ("out",),  # Foundry
)


@dataclass(frozen=True)
class ContractArtifact:
    name: str
    abi: list[dict[str, Any]]
    bytecode: str
    path: Path


def _artifact_candidates(root: Path, contract_name: str) -> list[Path]:
    return [
        root.joinpath(*layout, f"{contract_name}.sol", f"{contract_name}.json")
        for layout in _ARTIFACT_LAYOUTS
    ]


def find_artifact(contract_name: str, root: Optional[Path] = None) -> Path:
    """
    Locate the build artifact for a contract.

    Searches ``root`` (default: current directory) and its parents for either
    artifact layout.

    Raises:
        FileNotFoundError: If no artifact exists for the contract
    """
    start = (root or Path.cwd()).resolve()
    for parent in [start, *start.parents]:
        for candidate in _artifact_candidates(parent, contract_name):
            if candidate.is_file():
                return candidate
    raise FileNotFoundError(
        f"Artifact for {contract_name} not found under {start}. "
        f"Compile the contracts first."
    )


@lru_cache(maxsize=16)
def load_artifact(contract_name: str, root: Optional[Path] = None) -> ContractArtifact:
    """
    Load ABI and creation bytecode for a contract.

    Args:
        contract_name: Contract name (e.g., "Counter")
        root: Directory to start the artifact search from

    Returns:
        ContractArtifact with a 0x-prefixed bytecode string
    """
    path = find_artifact(contract_name, root)
    with path.open("r", encoding="utf-8") as f:
        artifact = json.load(f)

    bytecode = artifact.get("bytecode", "")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object", "")
    if not bytecode or bytecode == "0x":
        raise ValueError(f"No bytecode in artifact for {contract_name}")
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode

    return ContractArtifact(
        name=contract_name,
        abi=artifact["abi"],
        bytecode=bytecode,
        path=path,
    )


# ---------------------------------------------------------------------------
# ABI entry lookup
# ---------------------------------------------------------------------------


def _find_entry(abi: Sequence[dict[str, Any]], kind: str, name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == kind and entry.get("name") == name:
            return entry
    raise ValueError(f"{kind.capitalize()} {name} not found in ABI")


def _canonical_type(param: dict[str, Any]) -> str:
    """Expand tuple components so signatures hash the way solc does."""
    kind = param["type"]
    if kind.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){kind[len('tuple'):]}"
    return kind


def _types(params: Sequence[dict[str, Any]]) -> list[str]:
    return [_canonical_type(p) for p in params]


def signature(entry: dict[str, Any]) -> str:
    return f"{entry['name']}({','.join(_types(entry.get('inputs', [])))})"


def function_selector(entry: dict[str, Any]) -> str:
    return keccak_hex(signature(entry).encode("utf-8"))[:10]


def event_topic(entry: dict[str, Any]) -> str:
    return keccak_hex(signature(entry).encode("utf-8"))


def event_entry(abi: Sequence[dict[str, Any]], event_name: str) -> dict[str, Any]:
    return _find_entry(abi, "event", event_name)


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------


def encode_function_call(abi: Sequence[dict[str, Any]], function_name: str, args: Sequence[Any]) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex encoded calldata
    """
    func = _find_entry(abi, "function", function_name)
    input_types = _types(func.get("inputs", []))
    if len(args) != len(input_types):
        raise ValueError(
            f"{function_name} expects {len(input_types)} argument(s), got {len(args)}"
        )
    encoded_args = encode(input_types, list(args)) if input_types else b""
    return function_selector(func) + encoded_args.hex()


def decode_function_result(abi: Sequence[dict[str, Any]], function_name: str, data: str) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        None for functions without outputs, the single value for one output,
        otherwise a tuple
    """
    func = _find_entry(abi, "function", function_name)
    output_types = _types(func.get("outputs", []))
    if not output_types:
        return None

    decoded = decode(output_types, hex_to_bytes(data))
    if len(decoded) == 1:
        return decoded[0]
    return decoded


def encode_deploy_data(
    bytecode: str,
    args: Sequence[Any] = (),
    abi: Optional[Sequence[dict[str, Any]]] = None,
) -> str:
    """Append ABI-encoded constructor arguments to creation bytecode."""
    deploy_data = bytecode if bytecode.startswith("0x") else "0x" + bytecode
    if not args:
        return deploy_data

    constructor = None
    for entry in abi or ():
        if entry.get("type") == "constructor":
            constructor = entry
            break
    if constructor is None:
        raise ValueError("Constructor not found in ABI, but constructor args were provided.")

    input_types = _types(constructor.get("inputs", []))
    return deploy_data + encode(input_types, list(args)).hex()


def decode_revert_reason(data: Optional[str], abi: Sequence[dict[str, Any]] = ()) -> Optional[str]:
    """
    Turn revert return data into a readable reason.

    Handles Error(string), Panic(uint256) and custom errors declared in ``abi``.
    Returns None when there is nothing to decode.
    """
    if not data or data == "0x" or len(data) < 10:
        return None

    selector = data[:10].lower()
    try:
        payload = hex_to_bytes(data[10:])
        if selector == ERROR_SELECTOR:
            return decode(["string"], payload)[0]
        if selector == PANIC_SELECTOR:
            return f"Panic(0x{decode(['uint256'], payload)[0]:02x})"
        for entry in abi:
            if entry.get("type") == "error" and function_selector(entry) == selector:
                values = decode(_types(entry.get("inputs", [])), payload)
                return f"{entry['name']}({', '.join(repr(v) for v in values)})"
    except (DecodingError, ValueError):
        pass
    return f"unrecognized revert data {data}"


# ---------------------------------------------------------------------------
# Logs
# ---------------------------------------------------------------------------

_DYNAMIC_PREFIXES = ("string", "bytes", "tuple")


def _is_hashed_topic(param: dict[str, Any]) -> bool:
    # Indexed reference types are stored as their keccak hash.
    kind = param["type"]
    return kind.endswith("]") or (kind.startswith(_DYNAMIC_PREFIXES) and not _is_fixed_bytes(kind))


def _is_fixed_bytes(kind: str) -> bool:
    return kind.startswith("bytes") and kind[len("bytes"):].isdigit()


def decode_event_log(entry: dict[str, Any], log: dict[str, Any]) -> dict[str, Any]:
    """
    Decode one ``eth_getLogs`` entry under an event ABI entry.

    Raises:
        ValueError: If the topics or data don't match the event
        DecodingError: If eth-abi can't decode the payload
    """
    topics = log.get("topics") or []
    if not topics or topics[0].lower() != event_topic(entry):
        raise ValueError(f"topic0 does not match {signature(entry)}")

    inputs = entry.get("inputs", [])
    indexed = [p for p in inputs if p.get("indexed")]
    plain = [p for p in inputs if not p.get("indexed")]

    if len(topics) != 1 + len(indexed):
        raise ValueError(
            f"expected {1 + len(indexed)} topic(s) for {signature(entry)}, got {len(topics)}"
        )

    args: dict[str, Any] = {}
    for param, topic in zip(indexed, topics[1:]):
        raw = hex_to_bytes(topic)
        if len(raw) != 32:
            raise ValueError(f"topic for {param['name']} is not 32 bytes")
        if _is_hashed_topic(param):
            args[param["name"]] = bytes_to_hex(raw)
        else:
            args[param["name"]] = decode([param["type"]], raw)[0]

    data = hex_to_bytes(log.get("data") or "0x")
    if plain:
        values = decode(_types(plain), data)
        for param, value in zip(plain, values):
            args[param["name"]] = value
    elif data:
        raise ValueError(f"unexpected data for {signature(entry)}")

    return args
