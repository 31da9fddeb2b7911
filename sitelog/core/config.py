"""Configuration management for sitelog."""

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

    # SQLite Configuration
    sqlite_db_path: str = Field(default="data/sitelog.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Deployment
    environment: str = Field(default="development", description="Deployment environment name")
    service_version: str = Field(default="0.1.0", description="Service version reported to Logfire")

    @property
    def is_production(self) -> bool:
        """Whether the service runs in the production environment."""
        return self.environment.lower() == "production"

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # Dashboard date windows (days back from today)
    DASHBOARD_WINDOW_DAYS: int = 7
    ALL_LOGS_WINDOW_DAYS: int = 30

    # Directory
    MAX_FULL_NAME_LENGTH: int = 100

    # Notifications
    DEFAULT_NOTIFICATION_LIMIT: int = 50


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
