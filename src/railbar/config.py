"""
Configuration management for RailBar.

This module handles environment variables, settings validation, and configuration
management using Pydantic Settings for type safety and validation.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

RAILWAY_GRAPHQL_URL = "https://backboard.railway.com/graphql/v2"


class ServerConfig(BaseModel):
    """Status server configuration settings."""

    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8765, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")


class TransportConfig(BaseModel):
    """Railway API transport settings."""

    api_url: str = Field(default=RAILWAY_GRAPHQL_URL, description="GraphQL endpoint")
    timeout_seconds: float = Field(default=30.0, description="Request timeout")
    max_attempts: int = Field(
        default=3, description="Attempts per query, including 429 retries"
    )


class PollingConfig(BaseModel):
    """Polling configuration settings."""

    ticker_interval_seconds: float = Field(
        default=3.0, description="Rotation period for the active-service ticker"
    )
    deployment_batch_size: int = Field(
        default=5, description="Deployment lookups per aliased query"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Railway configuration
    railway_api_token: str = Field(
        default="", description="Railway API token (empty means use token file)"
    )
    railway_api_url: str = Field(
        default=RAILWAY_GRAPHQL_URL, description="Railway GraphQL endpoint"
    )
    request_timeout_seconds: float = Field(
        default=30.0, description="HTTP request timeout in seconds"
    )
    max_attempts: int = Field(default=3, description="Maximum attempts per query")
    token_file: str = Field(
        default="~/.config/railbar/token", description="Path of the stored API token"
    )

    # Polling configuration
    ticker_interval_seconds: float = Field(
        default=3.0, description="Ticker rotation interval in seconds"
    )
    deployment_batch_size: int = Field(
        default=5, description="Deployment lookups per batched query"
    )

    # Server configuration
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8765, description="Server port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Log format")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v.lower() not in {"json", "console"}:
            raise ValueError(f"Invalid log format: {v}")
        return v.lower()

    @field_validator(
        "request_timeout_seconds",
        "ticker_interval_seconds",
    )
    @classmethod
    def validate_positive_seconds(cls, v: float) -> float:
        """Durations must be positive."""
        if v <= 0:
            raise ValueError(f"Duration must be positive, got {v}")
        return v

    @field_validator("max_attempts", "deployment_batch_size")
    @classmethod
    def validate_positive_count(cls, v: int) -> int:
        """Counts must be at least one."""
        if v < 1:
            raise ValueError(f"Value must be at least 1, got {v}")
        return v

    @property
    def server_config(self) -> ServerConfig:
        """Get server configuration."""
        return ServerConfig(host=self.host, port=self.port, debug=self.debug)

    @property
    def transport_config(self) -> TransportConfig:
        """Get transport configuration."""
        return TransportConfig(
            api_url=self.railway_api_url,
            timeout_seconds=self.request_timeout_seconds,
            max_attempts=self.max_attempts,
        )

    @property
    def polling_config(self) -> PollingConfig:
        """Get polling configuration."""
        return PollingConfig(
            ticker_interval_seconds=self.ticker_interval_seconds,
            deployment_batch_size=self.deployment_batch_size,
        )


# Global settings instance - initialized lazily to avoid import-time errors
_settings_instance = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def __getattr__(name: str) -> Any:
    """Allow module-level access to settings attributes."""
    if name == "settings":
        return get_settings()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
