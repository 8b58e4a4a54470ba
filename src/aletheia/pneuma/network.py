"""
Network configuration.

Endpoints for the full node REST API and the two keyless services (pepper
and prover), resolved from defaults per network, ~/.aletheia/.env, and the
process environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import httpx
from dotenv import load_dotenv

# Default config directory
ALETHEIA_DIR = Path.home() / ".aletheia"
ALETHEIA_ENV = ALETHEIA_DIR / ".env"

DEFAULT_TIMEOUT = 30.0


class Network(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"
    DEVNET = "devnet"
    LOCAL = "local"
    CUSTOM = "custom"


NETWORK_TO_FULLNODE = {
    Network.MAINNET: "https://api.mainnet.aptoslabs.com/v1",
    Network.TESTNET: "https://api.testnet.aptoslabs.com/v1",
    Network.DEVNET: "https://api.devnet.aptoslabs.com/v1",
    Network.LOCAL: "http://127.0.0.1:8080/v1",
}

NETWORK_TO_PEPPER = {
    Network.MAINNET: "https://api.mainnet.aptoslabs.com/keyless/pepper/v0",
    Network.TESTNET: "https://api.testnet.aptoslabs.com/keyless/pepper/v0",
    Network.DEVNET: "https://api.devnet.aptoslabs.com/keyless/pepper/v0",
    Network.LOCAL: "http://127.0.0.1:8000/v0",
}

NETWORK_TO_PROVER = {
    Network.MAINNET: "https://api.mainnet.aptoslabs.com/keyless/prover/v0",
    Network.TESTNET: "https://api.testnet.aptoslabs.com/keyless/prover/v0",
    Network.DEVNET: "https://api.devnet.aptoslabs.com/keyless/prover/v0",
    Network.LOCAL: "http://127.0.0.1:8083/v0",
}


def parse_network(value: str) -> Network:
    try:
        return Network(value.strip().lower())
    except ValueError as exc:
        choices = ", ".join(n.value for n in Network)
        raise ValueError(f"Unknown network '{value}'. Expected one of: {choices}") from exc


@dataclass(frozen=True)
class ClientConfig:
    network: Network = Network.DEVNET
    fullnode_url: Optional[str] = None
    pepper_url: Optional[str] = None
    prover_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    transport: Optional[httpx.BaseTransport] = None

    def __post_init__(self) -> None:
        if self.network is Network.CUSTOM and not self.fullnode_url:
            raise ValueError("A custom network requires an explicit fullnode_url")

    def _resolve(self, override: Optional[str], defaults: dict[Network, str], service: str) -> str:
        url = override or defaults.get(self.network)
        if not url:
            raise ValueError(f"No {service} URL configured for network '{self.network.value}'")
        return url.rstrip("/")

    @property
    def fullnode(self) -> str:
        return self._resolve(self.fullnode_url, NETWORK_TO_FULLNODE, "full node")

    @property
    def pepper_service(self) -> str:
        return self._resolve(self.pepper_url, NETWORK_TO_PEPPER, "pepper service")

    @property
    def proving_service(self) -> str:
        return self._resolve(self.prover_url, NETWORK_TO_PROVER, "proving service")


def load_config(
    network: Optional[str] = None,
    env_path: Optional[Path] = None,
) -> ClientConfig:
    """
    Build a ClientConfig from ~/.aletheia/.env and the environment.

    Args:
        network: Network name; overrides APTOS_NETWORK when given
        env_path: Path to .env file (default: ~/.aletheia/.env)

    Returns:
        ClientConfig

    Raises:
        ValueError: If the network name is unknown or the timeout is not a number
    """
    env_path = env_path or ALETHEIA_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)

    name = network or os.environ.get("APTOS_NETWORK", Network.DEVNET.value)
    timeout_raw = os.environ.get("APTOS_REQUEST_TIMEOUT")
    try:
        timeout = float(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT
    except ValueError as exc:
        raise ValueError(f"APTOS_REQUEST_TIMEOUT must be a number, got '{timeout_raw}'") from exc

    return ClientConfig(
        network=parse_network(name),
        fullnode_url=os.environ.get("APTOS_FULLNODE_URL") or None,
        pepper_url=os.environ.get("APTOS_PEPPER_URL") or None,
        prover_url=os.environ.get("APTOS_PROVER_URL") or None,
        api_key=os.environ.get("APTOS_API_KEY") or None,
        timeout=timeout,
    )
