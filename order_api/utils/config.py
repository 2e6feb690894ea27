"""
Configuration management using pydantic-settings

Loads configuration from environment variables and .env file
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database Configuration
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="orders_db", description="Database name")
    DB_USER: str = Field(default="orders_user", description="Database user")
    DB_PASSWORD: str = Field(default="orders_password", description="Database password")
    DB_POOL_MIN: int = Field(default=1, description="Minimum pooled connections")
    DB_POOL_MAX: int = Field(default=10, description="Maximum pooled connections")

    # Storage backend: "postgres" or "memory"
    STORE_BACKEND: str = Field(default="postgres", description="Order store backend")

    # Order Lifecycle Configuration
    INITIAL_STATUS_NAME: str = Field(
        default="Created",
        description="Status assigned to every newly created order"
    )
    COMPLETED_STATUS_NAME: str = Field(
        default="Completed",
        description="Status whose orders count towards profit"
    )
    PROFIT_WINDOW_MONTHS: int = Field(
        default=1,
        description="Rolling lookback for the completed-order profit report"
    )
    MAX_ITEM_QUANTITY: int = Field(
        default=250,
        description="Upper bound for a single line item quantity"
    )

    # Application Settings
    API_HOST: str = Field(default="0.0.0.0", description="API host to bind to")
    API_PORT: int = Field(default=8080, description="API port to listen on")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    REQUEST_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None,
        description="Cancel a request's store work after this many seconds; unset means no limit"
    )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings
