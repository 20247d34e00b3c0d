from __future__ import annotations

from typing import Union

from eth_utils import keccak, to_checksum_address


BlockId = Union[int, str]

BLOCK_TAGS = ("latest", "earliest", "pending", "safe", "finalized")


def hex_to_int(value: Union[str, int, None]) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


def to_quantity(value: int) -> str:
    return hex(value)


def to_block_id(block: BlockId) -> str:
    if isinstance(block, int):
        if block < 0:
            raise ValueError(f"Block number must be non-negative: {block}")
        return to_quantity(block)
    if block not in BLOCK_TAGS:
        raise ValueError(f"Unknown block tag: {block}")
    return block


def hex_to_bytes(value: str) -> bytes:
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def bytes_to_hex(data: bytes) -> str:
    return "0x" + data.hex()


def keccak_hex(data: bytes) -> str:
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return bytes_to_hex(keccak(data))


def checksum(address: str) -> str:
    return to_checksum_address(address)


def same_address(a: str, b: str) -> bool:
    return a.lower() == b.lower()
