"""
Configuration - Network profiles and harness settings.

This is the only module that reads the process environment. Everything
else receives an explicit HarnessConfig.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .augury.poller import DEFAULT_POLL_INTERVAL
from .nexus.models import Endpoint
from .nexus.rpc import DEFAULT_GAS_MULTIPLIER, DEFAULT_REQUEST_TIMEOUT
from .signet.eth import normalize_private_key


DEFAULT_NETWORK = "ZKsyncOS"
DEFAULT_CHAIN_ID = 270
DEFAULT_CONFIRM_TIMEOUT = 120.0
DEFAULT_SETTLE_DELAY = 0.15


@dataclass(frozen=True)
class NetworkProfile:
    name: str
    chain_id: int
    url_var: str
    key_var: str


def generic_profile(env: Mapping[str, str]) -> NetworkProfile:
    """The env-named network the harness targets by default."""
    chain_id = env.get("CHAIN_ID")
    return NetworkProfile(
        name=env.get("NETWORK_NAME") or DEFAULT_NETWORK,
        chain_id=int(chain_id) if chain_id else DEFAULT_CHAIN_ID,
        url_var="RPC_URL",
        key_var="PRIVATE_KEY",
    )


SEPOLIA = NetworkProfile(
    name="sepolia",
    chain_id=11155111,
    url_var="SEPOLIA_RPC_URL",
    key_var="SEPOLIA_PRIVATE_KEY",
)


def resolve_profile(network: Optional[str], env: Mapping[str, str]) -> NetworkProfile:
    generic = generic_profile(env)
    if network is None or network == generic.name:
        return generic
    if network == SEPOLIA.name:
        return SEPOLIA
    raise ValueError(f"Unknown network {network!r}. Known: {generic.name}, {SEPOLIA.name}")


def _optional_seconds(env: Mapping[str, str], var: str, default: Optional[float]) -> Optional[float]:
    raw = env.get(var)
    if raw is None or raw == "":
        return default
    if raw.lower() in ("none", "unbounded"):
        # Unbounded waiting must be asked for explicitly.
        return None
    return float(raw)


@dataclass(frozen=True)
class HarnessConfig:
    endpoint: Endpoint
    private_key: str
    poll_interval: float = DEFAULT_POLL_INTERVAL
    confirm_timeout: Optional[float] = DEFAULT_CONFIRM_TIMEOUT
    settle_delay: float = DEFAULT_SETTLE_DELAY
    gas_multiplier: float = DEFAULT_GAS_MULTIPLIER
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive: {self.poll_interval}")
        if self.confirm_timeout is not None and self.confirm_timeout <= 0:
            raise ValueError(f"confirm_timeout must be positive: {self.confirm_timeout}")

    @classmethod
    def from_env(
        cls,
        network: Optional[str] = None,
        env_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "HarnessConfig":
        """
        Build a config from environment variables.

        Args:
            network: Profile name (default: NETWORK_NAME or "ZKsyncOS")
            env_path: .env file to load first; variables already set win
            environ: Mapping to read instead of os.environ

        Raises:
            ValueError: If the RPC URL or private key is missing
        """
        if environ is None:
            if env_path is not None and env_path.exists():
                load_dotenv(env_path, override=False)
            environ = os.environ

        profile = resolve_profile(network, environ)

        url = environ.get(profile.url_var)
        if not url:
            raise ValueError(f"{profile.url_var} must be set for network {profile.name}")
        private_key = environ.get(profile.key_var)
        if not private_key:
            raise ValueError(f"{profile.key_var} must be set for network {profile.name}")

        return cls(
            endpoint=Endpoint(url=url, chain_id=profile.chain_id, name=profile.name),
            private_key=normalize_private_key(private_key),
            poll_interval=float(environ.get("TESSERA_POLL_INTERVAL") or DEFAULT_POLL_INTERVAL),
            confirm_timeout=_optional_seconds(
                environ, "TESSERA_CONFIRM_TIMEOUT", DEFAULT_CONFIRM_TIMEOUT
            ),
            settle_delay=float(environ.get("TESSERA_SETTLE_DELAY") or DEFAULT_SETTLE_DELAY),
        )
