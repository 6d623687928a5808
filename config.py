"""
Configuration management using Pydantic Settings.
Validates all environment variables at startup for fail-fast behavior.
"""

from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings with validation."""

    # Ideal store
    IDEALS_BACKEND: Literal["file", "postgres"] = Field(
        default="file",
        description="Where ideals are persisted: 'file' or 'postgres'"
    )
    IDEALS_FILE: str = Field(
        default="ideals.json",
        description="Path of the JSON ideal document (file backend)"
    )

    # Database settings
    DATABASE_URL: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection string (postgres backend)"
    )
    DB_POOL_MIN: int = Field(
        default=1,
        ge=1,
        le=10,
        description="Minimum database pool connections"
    )
    DB_POOL_MAX: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum database pool connections"
    )

    # npm registry settings
    NPM_REGISTRY_URL: str = Field(
        default="https://registry.npmjs.org",
        description="npm registry used for latest-version ideals"
    )
    NPM_REGISTRY_TIMEOUT: int = Field(
        default=10,
        ge=1,
        le=120,
        description="npm registry HTTP timeout in seconds (1-120, default: 10)"
    )
    SUGGESTED_IDEAL_TIMEOUT: float = Field(
        default=15.0,
        gt=0,
        le=300,
        description="Upper bound in seconds on a single suggested-ideal lookup"
    )

    # Frontend settings
    FRONTEND_ORIGIN: str = Field(
        default="http://localhost:3000",
        description="Frontend origin for CORS (no wildcard allowed)"
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v_upper

    @field_validator("DB_POOL_MAX")
    @classmethod
    def validate_pool_max_gte_min(cls, v: int, info) -> int:
        """Ensure max pool size >= min pool size."""
        if "DB_POOL_MIN" in info.data and v < info.data["DB_POOL_MIN"]:
            raise ValueError("DB_POOL_MAX must be >= DB_POOL_MIN")
        return v

    @field_validator("NPM_REGISTRY_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        v = v.strip().rstrip("/")
        if not v.startswith(("http://", "https://")):
            raise ValueError("NPM_REGISTRY_URL must be an http(s) URL")
        return v

    @field_validator("FRONTEND_ORIGIN")
    @classmethod
    def validate_no_wildcard_origin(cls, v: str) -> str:
        """Prevent wildcard CORS origin."""
        if v == "*":
            raise ValueError(
                "FRONTEND_ORIGIN cannot be '*' (wildcard). "
                "Set explicit origin or leave unset for localhost:3000 default."
            )
        return v

    @property
    def database_enabled(self) -> bool:
        """Check if database is configured."""
        return bool(self.DATABASE_URL)


# Global settings instance
settings = Settings()
