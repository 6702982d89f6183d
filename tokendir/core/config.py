from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Credentials(BaseModel):
    """API credentials for one authenticated source."""

    api_key: Optional[str] = None
    secret_key: Optional[str] = None
    passphrase: Optional[str] = None

    @property
    def complete(self) -> bool:
        return bool(self.api_key and self.secret_key)


class Settings(BaseSettings):
    # Environment mode: dev or prod
    ENV: Literal["dev", "prod"] = "dev"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str | None = None
    SLACK_WEBHOOK_URL: str | None = None

    # Cycle cadence
    RECONCILE_INTERVAL_SECONDS: int = 60
    OVERLAY_INTERVAL_SECONDS: float = 3.0
    TICKER_POLL_INTERVAL_SECONDS: float = 3.0
    TICKER_TTL_SECONDS: float = 30.0
    PIPELINE_ENABLED: bool = True
    TICKER_POLLING_ENABLED: bool = True

    # Base dictionary published before the first reconciliation finishes
    SEED_DICTIONARY_PATH: str | None = None

    # Exchange asset metadata
    ASSET_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Coin catalog (CoinGecko)
    COINGECKO_API_KEY: str | None = None
    COINGECKO_REQUESTS_PER_MINUTE: int = 30
    COINGECKO_MAX_TICKER_PAGES: int = 50
    COINGECKO_TIMEOUT_SECONDS: float = 180.0

    # DEX price source (OKX DEX)
    DEX_BATCH_SIZE: int = 100
    DEX_INITIAL_DELAY_MS: int = 50
    DEX_DELAY_STEP_MS: int = 50
    DEX_MAX_DELAY_MS: int = 500
    DEX_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Exchange credentials
    BINANCE_API_KEY: str | None = None
    BINANCE_SECRET_KEY: str | None = None
    BYBIT_API_KEY: str | None = None
    BYBIT_SECRET_KEY: str | None = None
    OKX_API_KEY: str | None = None
    OKX_SECRET_KEY: str | None = None
    OKX_PASSPHRASE: str | None = None
    MEXC_API_KEY: str | None = None
    MEXC_SECRET_KEY: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # ignore unrelated keys in local .env
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENV == "prod"

    @property
    def effective_log_level(self) -> str:
        """Return appropriate log level based on environment."""
        if self.is_production:
            return self.LOG_LEVEL if self.LOG_LEVEL.upper() != "DEBUG" else "INFO"
        return self.LOG_LEVEL

    def credentials_for(self, prefix: str | None) -> Credentials:
        """Collect ``<PREFIX>_API_KEY`` / ``_SECRET_KEY`` / ``_PASSPHRASE``."""
        if not prefix:
            return Credentials()
        prefix = prefix.upper()
        return Credentials(
            api_key=getattr(self, f"{prefix}_API_KEY", None),
            secret_key=getattr(self, f"{prefix}_SECRET_KEY", None),
            passphrase=getattr(self, f"{prefix}_PASSPHRASE", None),
        )


settings = Settings()
