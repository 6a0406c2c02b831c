"""
Shared fixtures: deployment files, settings and a fake EVM client.
"""

import json
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from bitdsm_operator.config import OperatorConfig, Settings
from bitdsm_operator.evm import TxResult

# anvil account #0
PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
OPERATOR_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

# secp256k1 generator point, compressed
BTC_PUBLIC_KEY = "0x0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"

DELEGATION_MANAGER = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
AVS_DIRECTORY = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
SERVICE_MANAGER = "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0"
REGISTRY = "0xCf7Ed3AccA5a467e9e704C703E8D87F634fB0Fc9"
POD_MANAGER = "0xDc64a140Aa3E981100a9becA4E685f962f0cF6C9"


def write_deployment_files(directory: Path) -> None:
    """Write core and AVS address files the way the deploy scripts do."""
    core = {
        "anvil": {
            "delegationManager": DELEGATION_MANAGER.lower(),
            "avsDirectory": AVS_DIRECTORY.lower(),
            "strategyManager": "0x0000000000000000000000000000000000000001",
        }
    }
    avs = {
        "BitDSMServiceManagerProxy": SERVICE_MANAGER,
        "BitDSMRegistryProxy": REGISTRY,
        "BitcoinPodManagerProxy": POD_MANAGER,
    }
    (directory / "eigenlayer_addresses.json").write_text(json.dumps(core))
    (directory / "bitdsm_addresses.json").write_text(json.dumps(avs))


class FakeEvm:
    """Stands in for EvmClient; contracts are MagicMocks keyed by address."""

    def __init__(self, address: str = OPERATOR_ADDRESS):
        self.address = address
        self.contracts: dict[str, MagicMock] = {}
        self.transactions: list[tuple[Any, str]] = []
        self.fail_labels: dict[str, Exception] = {}
        self.head = 100

    def contract(self, address: str, abi: list[dict[str, Any]]) -> MagicMock:
        contract = self.contracts.setdefault(address, MagicMock(name=address))
        contract.address = address
        contract.abi = abi
        return contract

    def block_number(self) -> int:
        return self.head

    def transact(self, fn: Any, label: str) -> TxResult:
        if label in self.fail_labels:
            raise self.fail_labels[label]
        self.transactions.append((fn, label))
        return TxResult(
            tx_hash=f"{len(self.transactions):064x}",
            block_number=self.head,
            gas_used=21_000,
        )

    @property
    def labels(self) -> list[str]:
        return [label for _, label in self.transactions]


@pytest.fixture
def deployment_dir(tmp_path: Path) -> Path:
    write_deployment_files(tmp_path)
    return tmp_path


@pytest.fixture
def settings(deployment_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        private_key=PRIVATE_KEY,
        btc_public_key=BTC_PUBLIC_KEY,
        operator_uri="https://operator.example/metadata.json",
        deployment_dir=deployment_dir,
    )


@pytest.fixture
def config(settings: Settings) -> OperatorConfig:
    return OperatorConfig(settings=settings)


@pytest.fixture
def fake_evm() -> FakeEvm:
    return FakeEvm()
