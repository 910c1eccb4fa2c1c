# backend/fintrack/config.py
"""
Configuration for the FinTrack API.

Everything is read from FINTRACK_* environment variables (or a .env file)
through pydantic-settings, so the values are validated once at startup.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="FinTrack API")

    # Database
    database_url: str = Field(
        default="sqlite:///backend/data/fintrack.db",
        description="SQLAlchemy database URL",
    )

    # Tokens
    jwt_secret_key: str = Field(
        default="dev-key-change-me",
        description="Secret used to sign access tokens",
    )
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_minutes: int = Field(
        default=60,
        ge=1,
        description="Lifetime of issued access tokens in minutes",
    )
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)

    # Rate limits (requests per minute)
    rate_limit_per_minute: int = Field(default=60, ge=1)
    auth_rate_limit_per_minute: int = Field(default=10, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)
    slow_request_ms: float = Field(
        default=1000.0,
        description="Requests slower than this are logged as warnings",
    )

    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def token_ttl_seconds(self) -> int:
        return self.token_ttl_minutes * 60


@lru_cache
def get_settings() -> Settings:
    return Settings()
