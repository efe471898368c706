from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite:///./plants.db"
    cors_origins: List[str] = ["http://localhost:5173"]

    inat_api_base: str = "https://api.inaturalist.org/v1"
    inat_per_page: int = 100
    inat_user_agent: str = "plant-tracker/1.0"
    inat_timeout_seconds: float = 15.0
    inat_cache_max_entries: int = 128
    inat_cache_ttl_seconds: float = 600.0
    taxon_lookup_concurrency: int = 4
    taxon_lookup_timeout_seconds: float = 10.0

    # Overrides the bundled reference dataset when set.
    reference_catalog_path: Optional[str] = None

    # Older inventories required a location on every record.
    require_location: bool = False

    rate_limit_enabled: bool = True
    inat_rate_limit: str = "30/minute"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value):
        if isinstance(value, str):
            parts = [item.strip() for item in value.split(",") if item.strip()]
            return parts or ["http://localhost:5173"]
        return value

    @field_validator("taxon_lookup_concurrency")
    @classmethod
    def validate_concurrency(cls, value: int) -> int:
        if value < 1:
            raise ValueError("taxon_lookup_concurrency must be at least 1")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
