"""Deployment configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file without clobbering variables exported by the build pipeline
load_dotenv(override=False)

DEFAULT_BASE_URL = "https://nekoweb.org/api"


class Settings(BaseSettings):
    """Deployment settings loaded from NEKOWEB_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NEKOWEB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Credentials
    api_key: str = Field(default="")
    cookie: str | None = None

    # Target site
    folder: str | None = None
    site_name: str | None = None
    base_url: str = DEFAULT_BASE_URL

    # "Recently updated" support
    rss_feed_path: str | None = None
    discover_rss: bool = False
    marker_path: str = "/.nekoweb-deploy.html"

    # Local working state
    staging_dir: Path = Path(".build-temp")

    # Transport (None waits indefinitely)
    http_timeout: float | None = None

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"

    @property
    def has_cookie(self) -> bool:
        """Check if a cookie credential is configured."""
        return bool(self.cookie)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
