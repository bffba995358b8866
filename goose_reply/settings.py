"""Application settings using pydantic-settings.

Loads configuration from environment variables with .env file support.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,  # Allow both field name and alias
    )

    # Environment
    environment: Literal["development", "testing", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Backend
    goose_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the agent backend",
        validation_alias=AliasChoices("goose_url", "goose_base_url"),
    )
    goose_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Shared secret sent as the X-Secret-Key header",
        validation_alias=AliasChoices("goose_secret_key", "goose_server__secret_key"),
    )

    # Timeouts
    reply_timeout: float = Field(
        default=60.0,
        gt=0,
        description="Seconds to wait for the next frame of a reply stream",
    )
    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for a connection to the backend",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded once and reused.
    """
    return Settings()
