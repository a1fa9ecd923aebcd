"""
Configuration and settings for the SSO backend and migration scripts.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings shared by the API and the scripts."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="")

    # Document stores; the database name comes from the URI path.
    sso_db_uri: str = Field(default="mongodb://localhost:27017/mtlogin")
    enc_db_uri: str = Field(default="mongodb://localhost:27017/encompass")
    vmt_db_uri: str = Field(default="mongodb://localhost:27017/vmt")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Tokens
    jwt_secret: str = Field(default="mt-sso-development-secret-change-me")
    access_token_minutes: int = Field(default=15, ge=1)
    refresh_token_days: int = Field(default=7, ge=1)
    reset_password_hours: int = Field(default=1, ge=1)
    confirm_email_hours: int = Field(default=24, ge=1)

    # bcrypt accepts 4..31
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    migration_workers: int = Field(default=8, ge=1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
