"""
Application settings and configuration management using Pydantic Settings.
"""
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application Settings
    app_name: str = Field(default="Periodic Tables Reservations", description="Application name")
    app_env: str = Field(default="development", description="Environment (development, staging, production)")
    log_level: str = Field(default="INFO", description="Logging level")

    # Reservation API
    api_base_url: str = Field(default="http://localhost:5000", description="Reservation API base URL")
    api_timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP request timeout in seconds")

    # Form behaviour
    reference_utc_offset_minutes: int = Field(
        default=-420,
        ge=-720,
        le=840,
        description="UTC offset (minutes) that reservation dates are anchored to"
    )
    dashboard_path: str = Field(default="/dashboard", description="Page shown after a successful save")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the allowed values."""
        allowed_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed_levels:
            raise ValueError(f"log_level must be one of {allowed_levels}")
        return v_upper

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate environment is one of the allowed values."""
        allowed_envs = ["development", "staging", "production"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(f"app_env must be one of {allowed_envs}")
        return v_lower

    @field_validator("api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    def dashboard_url_for(self, reservation_date: str) -> str:
        """Dashboard path filtered to a single reservation date."""
        return f"{self.dashboard_path}?date={reservation_date}"


# Global settings instance
settings = Settings()
