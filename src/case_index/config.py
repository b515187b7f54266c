"""Application settings for the case index frontend service."""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly typed runtime configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CASE_INDEX_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = Field(default="http://localhost:3000", description="Base URL of the price-change API.")
    request_timeout_sec: float = Field(default=10.0, gt=0, description="Timeout applied to every upstream call.")
    page_size: int = Field(
        default=20,
        ge=1,
        description="Items per search page. Must match the API's default page size, which it does not report.",
    )
    top_movers_limit: int = Field(default=10, ge=1, le=100, description="Rows shown in each top movers list.")
    stale_time_sec: float = Field(default=300.0, ge=0, description="Freshness window for chart, stats and top movers.")
    search_stale_time_sec: float = Field(default=60.0, ge=0, description="Freshness window for paginated search.")
    item_stale_time_sec: float = Field(default=60.0, ge=0, description="Freshness window for single item lookups.")
    query_retries: int = Field(default=2, ge=0, le=10, description="Retries for transient upstream failures.")
    retry_base_delay_sec: float = Field(default=0.5, ge=0, description="Base delay of the exponential retry backoff.")
    cache_max_entries: int = Field(
        default=1000,
        ge=1,
        description="Entries kept in the shared query cache before the least recently used are dropped.",
    )
    cache_gc_time_sec: float = Field(default=600.0, gt=0, description="Entries unused for this long are dropped from the query cache.")
    debounce_ms: int = Field(default=500, ge=0, description="Quiet period before search text is used as a query.")
    default_chart_interval: str = Field(default="3m", description="Chart interval used when none is requested.")

    steam_image_base_url: str = Field(default="https://community.fastly.steamstatic.com/economy/image/")
    steam_market_url: str = Field(default="https://steamcommunity.com/market/listings/730/")

    metrics_enabled: bool = Field(default=True, description="Expose Prometheus metrics endpoint.")
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None, description="Optional path for a debug-level log file.")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8010)

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith(("http://", "https://")):
            raise ValueError("API_BASE_URL must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("default_chart_interval")
    @classmethod
    def _validate_interval(cls, value: str) -> str:
        if value not in {"7d", "1m", "3m", "6m"}:
            raise ValueError("DEFAULT_CHART_INTERVAL must be one of 7d, 1m, 3m, 6m")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"

    @property
    def debounce_sec(self) -> float:
        return self.debounce_ms / 1000.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid repeated environment parsing."""

    return Settings()
