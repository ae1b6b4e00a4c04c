"""Application settings and configuration."""

import re
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from neurolex_api.purchases.policy import PurchasePolicy

DEV_JWT_SECRET = "dev-jwt-secret-change-in-production"
ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "neurolex"
    postgres_password: str = "neurolex_dev_password"
    postgres_db: str = "neurolex"
    postgres_port: int = 5432

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # API
    api_port: int = 8000
    api_host: str = "0.0.0.0"
    environment: str = "development"

    # Security
    jwt_secret_key: str = DEV_JWT_SECRET
    jwt_algorithm: str = "HS256"
    jwt_expiration_hours: int = 24

    # Logging
    log_level: str = "INFO"

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 30
    rate_limit_ttl_seconds: int = 600  # TTL for rate limit keys in Redis

    # Chain access (Sepolia by default)
    app_name: str = "Neurolex"
    chain_id: int = 11155111
    chain_name: str = "Sepolia"
    chain_explorer_url: str = "https://sepolia.etherscan.io"
    chain_rpc_url: Optional[str] = None
    infura_api_key: Optional[str] = None
    chain_request_timeout_seconds: float = 10.0
    chain_max_inflight_requests: int = 4

    # Purchase policy
    platform_receiving_address: str = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
    token_unit_price: Decimal = Decimal("0.001")
    min_purchase: int = 10
    max_purchase: int = 10000
    amount_tolerance: Decimal = Decimal("0.0001")

    # Verified-transaction memo
    verified_memo_max_entries: int = 10000
    verified_memo_ttl_seconds: int = 86400

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@localhost:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def chain_rpc_url_computed(self) -> Optional[str]:
        """RPC endpoint, or None when no chain credentials are configured."""
        if self.chain_rpc_url:
            return self.chain_rpc_url
        if self.infura_api_key:
            return f"https://sepolia.infura.io/v3/{self.infura_api_key}"
        return None

    @property
    def purchase_policy(self) -> PurchasePolicy:
        """Policy constants shared by the validator and the verifier."""
        return PurchasePolicy(
            unit_price=self.token_unit_price,
            min_purchase=self.min_purchase,
            max_purchase=self.max_purchase,
            tolerance=self.amount_tolerance,
            receiving_address=self.platform_receiving_address,
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    def validate_production_settings(self):
        """Validate settings for production environment."""
        if not ADDRESS_PATTERN.match(self.platform_receiving_address or ""):
            raise ValueError(
                "PLATFORM_RECEIVING_ADDRESS must be a 0x-prefixed 40 hex digit address."
            )
        if self.min_purchase <= 0 or self.min_purchase > self.max_purchase:
            raise ValueError("MIN_PURCHASE must be positive and not exceed MAX_PURCHASE.")

        env = self.environment.lower()
        if env not in ("development", "test", "dev"):
            if self.jwt_secret_key == DEV_JWT_SECRET:
                raise ValueError(
                    "JWT_SECRET_KEY must be set in production. "
                    "Do not use the development default."
                )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
