"""
Configuration management for relaycast.

Supports configuration via environment variables and .env files.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Network(str, Enum):
    """Ethereum networks with known relay endpoints."""
    MAINNET = "mainnet"
    GOERLI = "goerli"
    SEPOLIA = "sepolia"


class RelaycastConfig(BaseSettings):
    """
    Configuration settings for relaycast.

    All settings can be configured via environment variables with the RELAYCAST_ prefix.
    List settings (``rpc_endpoints``, ``builders``) are read as JSON arrays.
    """

    model_config = SettingsConfigDict(
        env_prefix="RELAYCAST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Network settings
    network: Network = Field(
        default=Network.MAINNET,
        description="Ethereum network whose relay endpoints are targeted"
    )

    # Account settings
    private_key: Optional[SecretStr] = Field(
        default=None,
        description="Hex encoded private key of the sending account"
    )
    mnemonic: Optional[SecretStr] = Field(
        default=None,
        description="BIP-39 mnemonic phrase (alternative to private key)"
    )
    account_index: int = Field(
        default=0,
        ge=0,
        description="Address index on the m/44'/60'/0'/0 path for mnemonic accounts"
    )

    # Targets
    rpc_endpoints: List[str] = Field(
        default_factory=list,
        description="JSON-RPC node URLs used for plain transaction submission"
    )
    builders: List[str] = Field(
        default_factory=lambda: ["all"],
        description="Builder names targeted by bundle submissions"
    )

    # HTTP settings
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Per-request timeout for relay and node calls"
    )
    connect_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Connection timeout for relay and node calls"
    )
    sign_bundle_requests: bool = Field(
        default=False,
        description="Attach an X-Flashbots-Signature header to bundle requests"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )
    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format"
    )

    @property
    def private_key_value(self) -> str:
        """Private key as plain text, empty when unset."""
        return self.private_key.get_secret_value() if self.private_key else ""

    @property
    def mnemonic_value(self) -> str:
        """Mnemonic as plain text, empty when unset."""
        return self.mnemonic.get_secret_value() if self.mnemonic else ""


# Global config instance
_config: Optional[RelaycastConfig] = None


def get_config() -> RelaycastConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = RelaycastConfig()
    return _config


def set_config(config: RelaycastConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
