"""
Configuration management for the BitDSM operator.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


class Settings(BaseSettings):
    """Environment-based settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # EVM Network (anvil by default)
    rpc_url: str = "http://localhost:8545"
    chain_id: int = 31337
    private_key: str = ""

    # Operator identity
    operator_uri: str = Field(
        default="",
        description="Operator metadata URI passed to registerAsOperator",
        validation_alias=AliasChoices("OPERATOR_URI", "Operator_URI", "operator_uri"),
    )
    btc_public_key: str = Field(
        default="",
        description="Operator Bitcoin public key (hex), required for AVS registration",
    )

    # Deployment data
    deployment_dir: Path = Path(".")
    core_deployment_file: str = "eigenlayer_addresses.json"
    avs_deployment_file: str = "bitdsm_addresses.json"
    abi_dir: str = "abis"
    network: str = "anvil"

    # Transaction settings
    signature_expiry_seconds: int = 3600
    tx_timeout_seconds: int = 120
    gas_limit: int = 500_000

    # Watcher
    poll_interval_seconds: float = 2.0


@dataclass
class OperatorConfig:
    """Full operator configuration."""

    settings: Settings

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "OperatorConfig":
        """Load configuration from environment."""
        settings = Settings(_env_file=env_path) if env_path else Settings()
        return cls(settings=settings)

    def _resolve(self, name: str | Path) -> Path:
        path = Path(name)
        if path.is_absolute():
            return path
        return self.settings.deployment_dir / path

    @property
    def core_deployment_path(self) -> Path:
        return self._resolve(self.settings.core_deployment_file)

    @property
    def avs_deployment_path(self) -> Path:
        return self._resolve(self.settings.avs_deployment_file)

    @property
    def abi_path(self) -> Path:
        return self._resolve(self.settings.abi_dir)

    def require_private_key(self) -> str:
        """Return the operator private key or raise if it is not configured."""
        if not self.settings.private_key:
            raise ConfigError("PRIVATE_KEY environment variable is not set")
        return self.settings.private_key

    def require_btc_public_key(self) -> str:
        """Return the operator BTC public key or raise if it is not configured."""
        if not self.settings.btc_public_key:
            raise ConfigError("BTC_PUBLIC_KEY environment variable is not set")
        return self.settings.btc_public_key
