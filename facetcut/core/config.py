"""
Configuration management for the Facet Cut service.
Handles environment variables and settings for diamond deployment and upgrades.
"""

from typing import Any, Dict, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Facet Cut Service"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    ALLOWED_HOSTS: List[str] = ["localhost", "127.0.0.1"]

    # Blockchain Configuration
    TESTNET_RPC_URL: Optional[str] = None  # Sepolia: https://eth-sepolia.public.blastapi.io
    EVM_RPC_URL: str = "http://127.0.0.1:8545"  # Default: local hardhat node
    EVM_CHAIN_ID: int = 31337

    # Private key of the deployer / diamond owner (from .env)
    EVM_PRIVATE_KEY: Optional[str] = None

    # Default diamond used when a request does not name one
    DIAMOND_ADDRESS: Optional[str] = None

    # Compiled contract artifacts (hardhat layout: <dir>/**/<Name>.json)
    ARTIFACTS_DIR: str = "artifacts"

    # Transactions
    TX_RECEIPT_TIMEOUT: int = 120  # seconds
    GAS_LIMIT_BUFFER: float = 1.2
    DEFAULT_GAS_LIMIT: int = 500000

    # Re-read the loupe and re-check the plan right before diamondCut is sent
    REVALIDATE_BEFORE_SUBMIT: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    @property
    def ACTIVE_RPC_URL(self) -> str:
        """Get active RPC URL (TESTNET_RPC_URL takes priority over EVM_RPC_URL)."""
        return self.TESTNET_RPC_URL or self.EVM_RPC_URL

    @field_validator("ALLOWED_HOSTS", mode="before")
    @classmethod
    def parse_allowed_hosts(cls, v):
        """Parse allowed hosts from string or list."""
        if isinstance(v, str):
            return [host.strip() for host in v.split(",")]
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment setting."""
        allowed_envs = ["development", "staging", "production"]
        if v not in allowed_envs:
            raise ValueError(f"Environment must be one of {allowed_envs}")
        return v

    @field_validator("GAS_LIMIT_BUFFER")
    @classmethod
    def validate_gas_buffer(cls, v):
        """Validate gas limit buffer."""
        if v < 1.0:
            raise ValueError("GAS_LIMIT_BUFFER must be >= 1.0")
        return v

    def get_evm_config(self) -> Dict[str, Any]:
        """Get the active chain configuration (private key excluded)."""
        return {
            "rpc_url": self.ACTIVE_RPC_URL,
            "chain_id": self.EVM_CHAIN_ID,
            "diamond_address": self.DIAMOND_ADDRESS,
            "artifacts_dir": self.ARTIFACTS_DIR,
            "signer_configured": bool(self.EVM_PRIVATE_KEY),
        }

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"


# Create global settings instance
settings = Settings()


def is_production() -> bool:
    """Check if running in production environment."""
    return settings.ENVIRONMENT == "production"
