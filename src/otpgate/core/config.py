"""Configuration management for otpgate.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded at process
startup and is immutable during runtime.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration settings.

    Settings are loaded from environment variables (prefix ``OTPGATE_``) and
    .env files. The signing secret has no default and must be provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OTPGATE_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "otpgate"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    api_prefix: str = "/api/v1"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Database Settings
    database_url: str = "sqlite+aiosqlite:///./otpgate_data/otpgate.db"
    db_echo: bool = False

    # Security Settings
    secret_key: str = Field(
        ...,
        min_length=32,
        description="Symmetric secret for signing access and refresh tokens",
    )
    access_token_expire_minutes: int = Field(default=15, gt=0)
    refresh_token_expire_days: int = Field(default=7, gt=0)
    otp_expire_minutes: int = Field(default=5, gt=0)

    # Email Settings
    email_provider: Literal["console", "smtp"] = "console"
    email_from_address: str = "no-reply@otpgate.local"
    email_from_name: str = "otpgate"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_use_ssl: bool = False
    smtp_timeout: int = 10

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @model_validator(mode="after")
    def validate_email_provider(self) -> "Settings":
        """Validate the delivery channel for the current environment.

        SMTP needs a host. The console provider writes passcodes to the log
        and is refused in production.
        """
        if self.email_provider == "smtp" and not self.smtp_host:
            raise ValueError("email_provider 'smtp' requires OTPGATE_SMTP_HOST to be set")
        if self.email_provider == "console" and self.is_production:
            raise ValueError(
                "email_provider 'console' logs one-time passcodes and is not allowed in "
                "production; set OTPGATE_EMAIL_PROVIDER=smtp"
            )
        return self

    @model_validator(mode="after")
    def validate_database_url(self) -> "Settings":
        """Allow in-memory SQLite only in the testing environment.

        An in-memory database lives on a single shared connection, so one
        request's rollback can discard another request's pending write.
        """
        if ":memory:" in self.database_url and not self.is_testing:
            raise ValueError(
                "In-memory SQLite is only supported with OTPGATE_ENVIRONMENT=testing"
            )
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once per process. Tests that change the environment
    must call ``get_settings.cache_clear()``.

    Returns:
        Settings: Cached application settings instance.
    """
    return Settings()
