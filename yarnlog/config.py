"""Configuration with pydantic-settings.

Requires: DATABASE_URL, JWT_SECRET
Optional: CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY, CLOUDINARY_API_SECRET
(asset deletion reports a failure for every image without them)

Usage:
    from yarnlog.config import get_settings

    settings = get_settings()
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Required ===

    database_url: str = Field(
        ...,
        description="SQLAlchemy async connection URL",
        examples=["postgresql+asyncpg://user:pass@db:5432/yarnlog"],
    )
    jwt_secret: str = Field(..., description="Secret used to verify bearer tokens")

    # === Optional fields with defaults ===

    jwt_algorithm: str = Field(default="HS256", description="Bearer token signing algorithm")

    # Asset storage
    cloudinary_cloud_name: str = Field(default="", description="Cloudinary cloud name")
    cloudinary_api_key: str = Field(default="", description="Cloudinary API key")
    cloudinary_api_secret: str = Field(default="", description="Cloudinary API secret")
    asset_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single asset storage call",
    )

    # Logging configuration
    service_name: str = Field(
        default="yarnlog",
        description="Service name for structured logging",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @property
    def assets_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name and self.cloudinary_api_key and self.cloudinary_api_secret
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Validates required env vars on first call.
    Raises ValidationError if DATABASE_URL or JWT_SECRET are missing.
    """
    return Settings()
