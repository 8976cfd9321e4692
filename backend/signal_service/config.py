"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from signal_core.models import EngineConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Supported assets: base symbol -> exchange instrument
    binance_symbols: dict[str, str] = {"BTC": "BTCUSDT", "ETH": "ETHUSDT", "SOL": "SOLUSDT"}
    coinbase_products: dict[str, str] = {"BTC": "BTC-USD", "ETH": "ETH-USD", "SOL": "SOL-USD"}

    # Exchange endpoints
    binance_spot_url: str = "https://api.binance.com"
    binance_futures_url: str = "https://fapi.binance.com"
    coinbase_url: str = "https://api.exchange.coinbase.com"
    binance_api_key: str = ""

    # Data collection
    depth_limit: int = 5000
    primary_candle_limit: int = 300
    request_timeout: float = 20.0
    futures_timeout: float = 10.0
    evaluation_timeout: float = 60.0

    # Engine overrides (everything else uses EngineConfig defaults)
    coverage: float = 0.9
    distance_multiplier: float = 6.0
    anti_oscillation: bool = True
    trend_persist_ticks: int = 2
    smoothing_alpha: float = 0.35

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    @property
    def symbols(self) -> list[str]:
        """Assets available on both exchanges."""
        return sorted(set(self.binance_symbols) & set(self.coinbase_products))

    def engine_config(self) -> EngineConfig:
        """Build the engine configuration from settings overrides."""
        return EngineConfig(
            coverage=self.coverage,
            distance_multiplier=self.distance_multiplier,
            anti_oscillation=self.anti_oscillation,
            trend_persist_ticks=self.trend_persist_ticks,
            smoothing_alpha=self.smoothing_alpha,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
