"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env files.
"""

from dataclasses import dataclass
from typing import Dict, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CoinMeta:
    """Provider identifiers for a tracked coin."""
    symbol: str
    name: str
    coingecko_id: str
    binance_pair: Optional[str] = None


COIN_CATALOG: Dict[str, CoinMeta] = {
    "BTC": CoinMeta("BTC", "Bitcoin", "bitcoin", "BTCUSDT"),
    "ETH": CoinMeta("ETH", "Ethereum", "ethereum", "ETHUSDT"),
    "SOL": CoinMeta("SOL", "Solana", "solana", "SOLUSDT"),
    "LINK": CoinMeta("LINK", "Chainlink", "chainlink", "LINKUSDT"),
    "USDT": CoinMeta("USDT", "Tether", "tether"),
    "SUI": CoinMeta("SUI", "Sui", "sui", "SUIUSDT"),
    "TRX": CoinMeta("TRX", "TRON", "tron", "TRXUSDT"),
    "DOT": CoinMeta("DOT", "Polkadot", "polkadot", "DOTUSDT"),
    "ARB": CoinMeta("ARB", "Arbitrum", "arbitrum", "ARBUSDT"),
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "CoinBox"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["local", "development", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    # Per-symbol quote failures are logged at WARNING; raise to ERROR to mute them
    QUOTE_LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Persistent store
    STORE_BACKEND: Literal["memory", "redis", "file"] = "file"
    REDIS_URL: str = "redis://localhost:6379/0"
    STORE_FILE_PATH: str = "coinbox_store.json"
    STORE_KEY_PREFIX: str = "COINBOX_"

    # Currencies
    BASE_CURRENCY: str = "USD"
    LOCAL_CURRENCY: str = "RUB"

    # Providers
    PRICE_PROVIDER: str = "coingecko"
    FX_PROVIDERS: list[str] = ["open_er_api", "exchangerate_host", "coingecko_tether"]
    REQUEST_TIMEOUT_SEC: float = 10.0

    # Refresh
    REFRESH_INTERVAL_MINUTES: float = 5.0
    WATCHLIST: list[str] = list(COIN_CATALOG)

    # Portfolio
    DUPLICATE_POLICY: Literal["append", "merge"] = "append"

    # CORS
    CORS_ORIGINS: list[str] = ["http://localhost:8081", "http://localhost:19006"]


# Global settings instance
settings = Settings()
