"""Environment-driven settings constructed once and passed explicitly into the pipeline."""

from functools import lru_cache
from typing import Callable

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables or a local .env file."""

    APP_NAME: str = "CoinPulse"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    VERSION: str = "0.1.0"
    HOST: str = "0.0.0.0"
    PORT: int = 3115
    COINMARKETCAP_API_KEY: str
    COINMARKETCAP_BASE_URL: str = "https://pro-api.coinmarketcap.com"
    BINANCE_BASE_URL: str = "https://api.binance.com"
    COINGECKO_BASE_URL: str = "https://api.coingecko.com/api/v3"
    HTTP_TIMEOUT_S: float = 10.0
    QUOTE_SUFFIX: str = "USDT"
    CMC_OHLCV_CACHE_TTL_S: float = 180.0
    CMC_QUOTE_CACHE_TTL_S: float = 60.0
    BINANCE_CACHE_TTL_S: float = 60.0
    COINGECKO_CACHE_TTL_S: float = 60.0
    CACHE_MAX_ENTRIES: int = 512
    POLL_COINS: str = "bitcoin-1"
    POLL_INTERVAL_S: float = 60.0
    POLL_HISTORY_REFRESH_S: float = 180.0
    POLL_DAYS: int = 1
    POLL_INTERVAL_NAME: str = "hourly"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("COINMARKETCAP_API_KEY")
    @classmethod
    def _require_api_key(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("COINMARKETCAP_API_KEY is not set")
        return value

    @field_validator("COINMARKETCAP_BASE_URL", "BINANCE_BASE_URL", "COINGECKO_BASE_URL")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    def poll_coins(self) -> tuple[str, ...]:
        """Return normalized coin identifiers from POLL_COINS."""

        return self._split_csv(self.POLL_COINS, transform=str.lower)

    def poll_interval_s(self) -> float:
        """Return the quote poll period, never faster than the provider refresh cadence."""

        return max(60.0, self.POLL_INTERVAL_S)

    @staticmethod
    def _split_csv(value: str, transform: Callable[[str], str]) -> tuple[str, ...]:
        """Split comma-separated values while removing empty entries and duplicates."""

        items: list[str] = []
        seen: set[str] = set()

        for raw in value.split(","):
            item = transform(raw.strip())
            if not item or item in seen:
                continue
            seen.add(item)
            items.append(item)

        return tuple(items)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings; a missing API key fails here, at startup."""

    return Settings()
