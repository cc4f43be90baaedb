"""
Application configuration.

Values are read from environment variables (or a local ``.env`` file) and
cached through :func:`get_settings`.
"""

from decimal import Decimal
from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # Database Configuration
    database_url: str = "sqlite:///./liteflow.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    log_sql_queries: bool = False

    # Environment Settings
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # API
    cors_origins: List[str] = ["http://localhost:3000"]

    # Pricing
    vat_rate: Decimal = Decimal("0.10")

    # Concurrency
    table_lock_timeout_seconds: float = 5.0

    # Room policy: reject tables beyond a room's declared limits (True)
    # or only log a warning (False)
    enforce_room_limits: bool = False

    # Orders
    restock_on_cancellation: bool = True
    notification_history_default_days: int = 1

    # Reservations
    reservation_code_max_attempts: int = 50

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("vat_rate")
    @classmethod
    def validate_vat_rate(cls, v):
        if v < 0 or v >= 1:
            raise ValueError("VAT_RATE must be between 0 and 1")
        return v

    @field_validator("table_lock_timeout_seconds")
    @classmethod
    def validate_lock_timeout(cls, v):
        if v <= 0:
            raise ValueError("TABLE_LOCK_TIMEOUT_SECONDS must be positive")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Returns:
        Settings instance with environment variables loaded
    """
    return Settings()


# Export settings instance for easy import
settings = get_settings()
