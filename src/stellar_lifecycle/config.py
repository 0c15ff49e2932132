"""Application configuration using pydantic-settings.

Network selection, the admin signing credential and polling defaults all live
here. Core classes never read this module directly; the app factory and the
scripts build a Settings instance and pass it down.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MAINNET_PASSPHRASE = "Public Global Stellar Network ; September 2015"
TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    dry_run: bool = Field(
        default=False, description="Use the in-process simulated ledger (no network)"
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")
    admin_token: str = Field(default="", description="Admin API token for protected endpoints")

    # ======================
    # Stellar network
    # ======================
    stellar_network: str = Field(default="testnet", description="testnet or mainnet")
    soroban_rpc_url: str = Field(
        default="https://soroban-testnet.stellar.org", description="Soroban RPC URL"
    )
    rpc_timeout: float = Field(default=30.0, description="Per-request RPC timeout in seconds")

    # ======================
    # Managed resource (contract code)
    # ======================
    resource_path: str = Field(
        default="contracts/simple_account/out/simple_account.wasm",
        description="Path to the contract code that must stay installed",
    )
    simple_account_wasm_hash: Optional[str] = Field(
        default=None, description="Expected SHA-256 of the contract code (hex)"
    )
    wasm_admin_secret: Optional[str] = Field(
        default=None, description="Admin secret seed used for install operations only"
    )
    master_key: Optional[str] = Field(
        default=None, description="Fernet key used to decrypt an encrypted admin secret"
    )
    init_resource_on_startup: bool = Field(
        default=True, description="Run resource maintenance when the API starts"
    )
    recheck_after_failed_install: bool = Field(
        default=False, description="Re-read resource status after a failed or timed-out install"
    )
    resource_lock_timeout: float = Field(
        default=120.0, description="Seconds to wait for another install-side operation on the resource (0 = forever)"
    )

    # ======================
    # Transactions
    # ======================
    install_fee: int = Field(default=10_000_000, description="Max fee for install/restore (stroops)")
    ttl_bump_fee: int = Field(default=10_000, description="Max fee for TTL extension (stroops)")
    tx_timeout: int = Field(default=300, description="Transaction validity window in seconds")
    ttl_bump_threshold: int = Field(
        default=17280, description="Extend TTL when fewer ledgers than this remain (~1 day)"
    )
    max_ttl_extension: int = Field(
        default=500000, description="Ledgers to extend TTL to (~29 days)"
    )

    # ======================
    # Polling
    # ======================
    poll_max_attempts: int = Field(default=30, description="Poll rounds before giving up")
    poll_interval_ms: int = Field(default=2000, description="Delay between poll rounds")

    # ======================
    # Custodial provider (Crossmint)
    # ======================
    crossmint_api_key: str = Field(default="", description="Crossmint server API key")
    crossmint_api_base: str = Field(
        default="https://staging.crossmint.com/api", description="Crossmint API base URL"
    )
    crossmint_api_version: str = Field(default="2025-06-09", description="Crossmint API version")

    @property
    def is_testnet(self) -> bool:
        """Anything but mainnet is treated as a test network."""
        return self.stellar_network.lower() != "mainnet"

    @property
    def network_passphrase(self) -> str:
        return TESTNET_PASSPHRASE if self.is_testnet else MAINNET_PASSPHRASE

    @property
    def has_admin_secret(self) -> bool:
        return bool(self.wasm_admin_secret)

    def polling_policy(self):
        """Build the default PollingPolicy from configured values."""
        from stellar_lifecycle.lifecycle.models import PollingPolicy

        return PollingPolicy(
            max_attempts=self.poll_max_attempts,
            interval_ms=self.poll_interval_ms,
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "network": self.stellar_network,
            "rpc_url": self.soroban_rpc_url,
            "resource_path": self.resource_path,
            "admin_secret": "***" if self.wasm_admin_secret else "(not set)",
            "master_key": "***" if self.master_key else "(not set)",
            "crossmint": {
                "api_base": self.crossmint_api_base,
                "api_version": self.crossmint_api_version,
                "api_key": "***" if self.crossmint_api_key else "(not set)",
            },
            "polling": {
                "max_attempts": self.poll_max_attempts,
                "interval_ms": self.poll_interval_ms,
            },
            "ttl": {
                "bump_threshold": self.ttl_bump_threshold,
                "max_extension": self.max_ttl_extension,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
