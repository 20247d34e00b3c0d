"""
ECDSA / secp256k1 account handling for Tessera.

One signing account drives a harness session. Keys come from explicit
parameters or from the environment (optionally a .env file); nothing is
ever written to disk.

Dependencies: eth-account (no full web3.py needed)
"""

from __future__ import annotations

import os
import secrets
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount


def generate_eoa() -> tuple[str, str]:
    """
    Generate a new ECDSA/secp256k1 keypair (EOA).

    Returns:
        Tuple of (private_key_hex, address)
    """
    private_key = "0x" + secrets.token_hex(32)
    account = Account.from_key(private_key)
    return private_key, account.address


def normalize_private_key(private_key: str) -> str:
    private_key = private_key.strip()
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    if len(private_key) != 66:
        raise ValueError("Private key must be 32 bytes of hex")
    return private_key


def load_private_key(env_var: str = "PRIVATE_KEY", env_path: Optional[Path] = None) -> str:
    """
    Load a private key from the environment.

    Args:
        env_var: Variable holding the key
        env_path: Optional .env file loaded first (existing variables win)

    Returns:
        0x-prefixed hex private key

    Raises:
        ValueError: If the variable is unset or empty
    """
    if env_path is not None and env_path.exists():
        load_dotenv(env_path, override=False)

    private_key = os.environ.get(env_var)
    if not private_key:
        raise ValueError(f"{env_var} not set. Export it or add it to a .env file.")

    return normalize_private_key(private_key)


def get_account(private_key: str) -> LocalAccount:
    """eth-account LocalAccount for signing transactions."""
    return Account.from_key(normalize_private_key(private_key))


def get_address(private_key: str) -> str:
    """0x-prefixed checksummed address for a private key."""
    return get_account(private_key).address
