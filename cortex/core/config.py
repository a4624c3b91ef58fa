"""Configuration management for cortex."""

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
    sqlite_db_path: str = Field(default="./cortex.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Calendar Configuration
    user_timezone: str = Field(
        default="UTC",
        description="IANA timezone used for local calendar days (streaks, period keys)",
    )

    # Time Canvas Geometry
    hour_height: int = Field(default=80, description="Pixels per hour on the day canvas")
    min_task_height: int = Field(default=40, description="Minimum rendered height of a task block in pixels")
    snap_minutes: int = Field(default=15, description="Grid increment that dropped and created slots snap to")
    default_task_minutes: int = Field(default=60, description="Duration of a task created from an empty slot")

    # Conditional Resolution
    default_postpone_days: int = Field(
        default=7, description="Days to postpone dependents when a postpone outcome sets no explicit value"
    )

    # Sessions
    session_ttl_hours: int = Field(default=12, description="Lifetime of a login session in hours")

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

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Calendar
    MINUTES_PER_HOUR: int = 60
    HOURS_PER_DAY: int = 24
    MINUTES_PER_DAY: int = 24 * 60

    # Progress bounds
    PROGRESS_MIN: int = 0
    PROGRESS_MAX: int = 100

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Default pagination limit for list queries

    # Outreach daily targets per program
    OUTREACH_DAILY_TARGETS: dict[str, int] = {"nova": 20, "amaka_ai": 10}  # noqa: RUF012

    # Session header used by the HTTP API
    SESSION_HEADER: str = "X-Session-Token"


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
