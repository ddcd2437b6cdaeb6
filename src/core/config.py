"""Configuration management for Beacon Analytics.

Provides Pydantic-based configuration classes for type-safe, validated configuration
management using environment variables.
"""

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    url: str | None = Field(default=None, description="Database connection URL")
    query_timeout: int = Field(default=30, description="Statement timeout in seconds")
    connect_timeout: int = Field(default=10, description="Connection timeout in seconds")
    pool_timeout: int = Field(default=30, description="Seconds to wait for a pooled connection")

    model_config = SettingsConfigDict(env_prefix="DATABASE_", case_sensitive=False)


class CredentialConfig(BaseSettings):
    """API key lifecycle configuration."""

    ttl_days: int = Field(default=365, description="Days until a newly issued API key expires")

    model_config = SettingsConfigDict(env_prefix="API_KEY_", case_sensitive=False)

    @field_validator("ttl_days")
    @classmethod
    def validate_ttl_days(cls, v):
        if v < 1:
            raise ValueError("API_KEY_TTL_DAYS must be at least 1")
        return v


class AggregationConfig(BaseSettings):
    """Background aggregation configuration."""

    workers: int = Field(default=2, description="Worker threads draining the aggregation queue")
    queue_size: int = Field(default=1000, description="Maximum pending background jobs")

    model_config = SettingsConfigDict(env_prefix="AGGREGATION_", case_sensitive=False)

    @field_validator("workers", "queue_size")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class RateLimitConfig(BaseSettings):
    """Rate limiting configuration (flask-limiter notation)."""

    enabled: bool = Field(default=True, description="Enable request rate limiting")
    storage_uri: str = Field(default="memory://", description="flask-limiter storage backend")
    key_management: str = Field(default="20 per minute", description="Limit for /api/auth routes")
    collection: str = Field(default="30 per minute", description="Limit for event collection")
    analytics: str = Field(default="20 per 5 minutes", description="Limit for analytics reads")

    model_config = SettingsConfigDict(env_prefix="RATELIMIT_", case_sensitive=False)


class ServerConfig(BaseSettings):
    """HTTP server configuration."""

    port: int = Field(default=8000, description="HTTP port")
    threads: int = Field(default=8, description="Waitress worker threads")
    allowed_origins: str = Field(default="", description="Comma-separated list of CORS origins")
    trust_proxy: bool = Field(default=False, description="Honour X-Forwarded-* headers from one proxy hop")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)

    @property
    def origin_list(self) -> list[str]:
        """Get allowed CORS origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


class AppConfig(BaseSettings):
    """Main application configuration."""

    environment: str = Field(default="development", description="Environment: production, staging, or development")
    debug: bool = Field(default=False, description="Enable debug mode")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    credentials: CredentialConfig = Field(default_factory=CredentialConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    rate_limits: RateLimitConfig = Field(default_factory=RateLimitConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False)


# Global configuration instance
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None


def is_production() -> bool:
    """Check if running in production environment.

    Returns:
        bool: True if ENVIRONMENT=production, False otherwise
    """
    return os.getenv("ENVIRONMENT", "development").lower() == "production"
