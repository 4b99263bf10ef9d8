"""Application configuration using pydantic-settings.

All environment variables are loaded from .env file or environment.
No hardcoded secrets, URLs, or credentials.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP server
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Listening port")

    # PostgreSQL configuration
    database_url: str = Field(..., description="PostgreSQL DSN (required, startup fails without it)")
    postgres_pool_min_size: int = Field(default=2, description="Minimum pool connections")
    postgres_pool_max_size: int = Field(default=10, description="Maximum pool connections")

    # SendGrid configuration
    sendgrid_api_key: str = Field(..., description="SendGrid API key for Bearer auth")
    sendgrid_base_url: str = Field(
        default="https://api.sendgrid.com",
        description="SendGrid Web API base URL",
    )
    mail_from_email: str = Field(default="info@on-demand.io", description="Broadcast sender address")
    mail_from_name: str = Field(default="on-demand", description="Broadcast sender display name")
    mail_timeout_seconds: float = Field(default=30.0, description="Timeout per outbound mail request")

    # Application settings
    app_name: str = Field(default="Contact Onboarding", description="Application name")
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def mail_sender(self) -> str:
        """Sender in RFC 5322 display form."""
        return f"{self.mail_from_name} <{self.mail_from_email}>"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Using @lru_cache prevents crash on import when .env is missing (e.g. during tests).
    Settings are loaded lazily on first access.
    """
    return Settings()
