"""
Loading of deployed contract addresses and ABIs from JSON files.

Core EigenLayer addresses are keyed by network:

    {"anvil": {"delegationManager": "0x...", "avsDirectory": "0x...", ...}}

AVS addresses are flat:

    {"BitDSMServiceManagerProxy": "0x...", "BitDSMRegistryProxy": "0x...", ...}
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
from web3 import Web3

from .abis import BUNDLED_ABIS
from .errors import DeploymentError

logger = structlog.get_logger()


@dataclass(frozen=True)
class CoreDeployment:
    """EigenLayer core contract addresses."""

    delegation_manager: str
    avs_directory: str


@dataclass(frozen=True)
class AvsDeployment:
    """BitDSM AVS contract addresses (proxies)."""

    service_manager: str
    registry: str
    pod_manager: str


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise DeploymentError(f"Deployment file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise DeploymentError(f"Invalid JSON in {path}: {e}") from e


def _address(data: dict[str, Any], key: str, path: Path) -> str:
    value = data.get(key)
    if not value:
        raise DeploymentError(f"Missing address '{key}' in {path}")
    try:
        return Web3.to_checksum_address(value)
    except (TypeError, ValueError) as e:
        raise DeploymentError(f"Invalid address '{key}' in {path}: {value}") from e


def load_core_deployment(path: Path, network: str = "anvil") -> CoreDeployment:
    """Load EigenLayer core addresses for a network."""
    data = _read_json(path)
    section = data.get(network) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise DeploymentError(f"Network '{network}' not found in {path}")

    return CoreDeployment(
        delegation_manager=_address(section, "delegationManager", path),
        avs_directory=_address(section, "avsDirectory", path),
    )


def load_avs_deployment(path: Path) -> AvsDeployment:
    """Load BitDSM AVS proxy addresses."""
    data = _read_json(path)
    if not isinstance(data, dict):
        raise DeploymentError(f"Expected a JSON object in {path}")

    return AvsDeployment(
        service_manager=_address(data, "BitDSMServiceManagerProxy", path),
        registry=_address(data, "BitDSMRegistryProxy", path),
        pod_manager=_address(data, "BitcoinPodManagerProxy", path),
    )


def load_abi(name: str, abi_dir: Path) -> list[dict[str, Any]]:
    """
    Load a contract ABI by name.

    Reads ``<abi_dir>/<name>.json``, which may hold either a bare ABI list or
    a compiler artifact with an ``abi`` field. Falls back to the bundled
    minimal ABI when the file does not exist.
    """
    path = abi_dir / f"{name}.json"
    if not path.exists():
        if name not in BUNDLED_ABIS:
            raise DeploymentError(f"ABI file not found: {path}")
        logger.debug("using_bundled_abi", contract=name, path=str(path))
        return BUNDLED_ABIS[name]

    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list):
        raise DeploymentError(f"No ABI list found in {path}")
    return data
