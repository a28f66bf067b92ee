"""Client configuration (pydantic-settings).

Values are read from environment variables (and an optional ``.env`` file).
Polling cadence and lifetime are configurable because anchors expose no push
channel to the client.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"
PUBNET_PASSPHRASE = "Public Global Stellar Network ; September 2015"


class Settings(BaseSettings):
    """Client settings, read from STELLA_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="STELLA_",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug logging")
    dry_run: bool = Field(
        default=True, description="Use the simulated wallet extension (no real signing)"
    )

    # ======================
    # Backend API
    # ======================
    api_base_url: str = Field(
        default="http://127.0.0.1:3001", description="Base URL of the anchor proxy API"
    )
    request_timeout_seconds: float = Field(
        default=15.0, description="Timeout for a single HTTP request"
    )

    # ======================
    # Network
    # ======================
    network: str = Field(default="stellar_testnet", description="stellar_testnet or stellar_pubnet")
    network_passphrase: Optional[str] = Field(
        default=None, description="Override the network passphrase used for signing"
    )

    # ======================
    # Persistence
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/stella.db",
        description="Database holding the persisted wallet session",
    )

    # ======================
    # Interactive flows
    # ======================
    poll_interval_seconds: float = Field(
        default=5.0, description="Seconds between status polls for one flow"
    )
    poll_timeout_seconds: float = Field(
        default=30 * 60, description="Hard cap on polling a flow, measured from its start"
    )
    flow_retention_seconds: float = Field(
        default=24 * 60 * 60, description="Tracked flows older than this are pruned"
    )
    token_ttl_seconds: float = Field(
        default=24 * 60 * 60, description="Fallback lifetime of an anchor auth token"
    )

    # ======================
    # Wallet extension
    # ======================
    extension_timeout_seconds: float = Field(
        default=3.0, description="Timeout for probing the wallet extension"
    )
    capability_redetect_delay_seconds: float = Field(
        default=1.0, description="Delay before probing the extension a second time on startup"
    )
    dry_run_address: str = Field(
        default="", description="Account the simulated extension approves in dry-run mode"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_testnet(self) -> bool:
        return self.network.lower() != "stellar_pubnet"

    @property
    def passphrase(self) -> str:
        """Network passphrase used when an anchor does not supply one."""
        if self.network_passphrase:
            return self.network_passphrase
        return TESTNET_PASSPHRASE if self.is_testnet else PUBNET_PASSPHRASE

    def get_safe_dict(self) -> dict:
        """Settings suitable for logging (credentials hidden)."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_base_url": self.api_base_url,
            "network": self.network,
            "database_url": self._redact_url(self.database_url),
            "polling": {
                "interval": self.poll_interval_seconds,
                "timeout": self.poll_timeout_seconds,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Hide the password in a database URL."""
        try:
            return make_url(url).render_as_string(hide_password=True)
        except ArgumentError:
            return url


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
