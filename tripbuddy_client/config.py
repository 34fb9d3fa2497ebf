"""
Client configuration for the TripBuddy device library.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseSettings):
    """Device-side settings (env prefix ``TRIPBUDDY_CLIENT_``)."""

    model_config = SettingsConfigDict(
        env_prefix="TRIPBUDDY_CLIENT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    backend_url: str = Field(default="http://192.168.1.11:5000")
    request_timeout: float = Field(default=20.0)

    # SWR cache lifetimes (milliseconds)
    cache_ttl_ms: int = Field(default=300_000)
    durable_cache_ttl_ms: int = Field(default=86_400_000)

    # Client-side flight search budget
    rate_limit: int = Field(default=85)
    rate_limit_window_ms: int = Field(default=60_000)

    storage_path: str = Field(default="tripbuddy.db")
    log_level: str = Field(default="info")
