"""
Shared configuration management for TripBuddy services.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPBUDDY_",
        env_file=".env",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Remote trip store ("memory://" or a redis:// URL)
    document_store_url: str = Field(default="memory://")

    # External flight fare API
    rapidapi_key: str = Field(default="")
    rapidapi_host: str = Field(default="flight-fare-search.p.rapidapi.com")
    flight_api_timeout: float = Field(default=15.0)
    flight_results_limit: int = Field(default=20)

    # Per-category search cache TTLs (seconds)
    flights_cache_ttl: int = Field(default=1800)
    trains_cache_ttl: int = Field(default=3600)
    buses_cache_ttl: int = Field(default=1800)
    cars_cache_ttl: int = Field(default=3600)
    cache_purge_interval: float = Field(default=120.0)

    # Flight search rate limiting
    flight_search_limit: int = Field(default=10)
    flight_search_window_seconds: float = Field(default=3600.0)

    def category_ttls(self) -> Dict[str, int]:
        """Return the cache TTL for each transport category."""
        return {
            "flights": self.flights_cache_ttl,
            "trains": self.trains_cache_ttl,
            "buses": self.buses_cache_ttl,
            "cars": self.cars_cache_ttl,
        }


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, overrides: Optional[Dict] = None) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **(overrides or {}))
