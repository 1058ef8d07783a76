"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from loguru import logger
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from budget_indexer.config.constants import (
    DEFAULT_BATCH_PAUSE_SECONDS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_ERROR_BACKOFF_MULTIPLIER,
    DEFAULT_MAX_BATCH_RETRIES,
    DEFAULT_POLLING_INTERVAL_SECONDS,
    DEFAULT_RPC_TIMEOUT_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Blockchain
    rpc_url: str = "https://mainnet.base.org"
    chain_id: int = Field(default=8453, gt=0)

    # Contracts (Base mainnet)
    factory_contract_address: str = "0x82eA29c17EE7eE9176CEb37F728Ab1967C4993a5"
    budget_wallet_template_address: str = "0x4B80e374ff1639B748976a7bF519e2A35b43Ca26"
    token_contract_address: str

    # Starting blocks (first block that gets indexed)
    factory_start_block: int = Field(default=24070000, ge=0)
    token_start_block: int = Field(default=24070000, ge=0)

    # Database
    database_url: str
    database_echo: bool = False

    # Indexer
    batch_size: int = Field(
        default=DEFAULT_BATCH_SIZE, gt=0, description="Blocks per sync batch"
    )
    polling_interval: float = Field(
        default=DEFAULT_POLLING_INTERVAL_SECONDS,
        gt=0,
        description="Seconds to wait when the indexer is caught up",
    )
    error_backoff_multiplier: float = Field(
        default=DEFAULT_ERROR_BACKOFF_MULTIPLIER,
        ge=1.0,
        description="Polling interval multiplier applied after a failed iteration",
    )
    batch_pause: float = Field(
        default=DEFAULT_BATCH_PAUSE_SECONDS,
        ge=0,
        description="Pause between batches to bound RPC request rate",
    )
    max_batch_retries: int = Field(
        default=DEFAULT_MAX_BATCH_RETRIES,
        gt=0,
        description="Consecutive failures of one batch before an alert is raised",
    )
    skip_failed_batches: bool = Field(
        default=False,
        description="Skip a batch after max_batch_retries failures instead of stalling",
    )
    rpc_timeout: float = Field(
        default=DEFAULT_RPC_TIMEOUT_SECONDS, gt=0, description="Per-call RPC timeout"
    )

    # Application
    environment: str = "production"
    log_level: str = "INFO"
    log_file: str | None = "logs/indexer.log"
    health_check_port: int = Field(
        default=8030, ge=0, le=65535, description="Health server port (0 disables)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "factory_contract_address",
        "budget_wallet_template_address",
        "token_contract_address",
    )
    @classmethod
    def validate_eth_address(cls, v: str) -> str:
        """Validate Ethereum address format."""
        if not v.startswith("0x") or len(v) != 42:
            raise ValueError(
                f"Invalid Ethereum address: {v}. "
                "Must start with 0x and be 42 characters long."
            )
        try:
            int(v[2:], 16)
        except ValueError as exc:
            raise ValueError(f"Invalid Ethereum address format: {v}") from exc
        return v.lower()

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must start with postgresql+asyncpg:// "
                "or sqlite+aiosqlite://"
            )
        return v

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Validate RPC URL scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("RPC_URL must be an http(s) JSON-RPC endpoint")
        return v

    @model_validator(mode="after")
    def validate_production(self) -> "Settings":
        """Validate production-specific requirements."""
        if self.environment == "production" and self.database_url.startswith("sqlite"):
            logger.warning(
                "DATABASE_URL points to SQLite in production. "
                "Use PostgreSQL for a long-running indexer."
            )
        return self

    @property
    def start_block(self) -> int:
        """First block the indexer processes when no checkpoint exists."""
        return min(self.factory_start_block, self.token_start_block)

    @property
    def tracked_contracts(self) -> list[str]:
        """Contracts whose checkpoint is tracked in indexer_status."""
        return [self.factory_contract_address, self.token_contract_address]


# Global settings instance
settings = Settings()
