"""Configuration management using pydantic-settings."""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        extra="ignore",
    )

    algolia_application_id: str = Field(description="Algolia application ID, also used to derive host names")
    algolia_api_key: str = Field(description="Algolia API key injected into every upstream call")
    cache_ttl_ssr: int = Field(default=600, ge=1, description="Cache max-age for SSR responses in seconds")
    cache_ttl_client: int = Field(
        default=0, ge=0, description="Cache max-age for browser responses in seconds (0 disables)"
    )
    ssr_sentinel: str = Field(
        default="ASDf928gh2efhajsdf!!",
        description="Exact x-ssr-request value that marks server-side rendered callers",
    )
    canonical_origin: str = Field(
        default="https://www.avocadostore.de", description="Fallback Access-Control-Allow-Origin value"
    )
    environment: str = Field(default="production", description="Environment name stamped on log events")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=8080, description="Bind port")


@lru_cache
def get_settings() -> Settings:
    """Get the application settings instance."""
    return Settings()
