"""
Configuration module for the banana API service.

This module provides centralized configuration management using Pydantic settings.
All configuration values can be overridden via environment variables or .env file.
"""

from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DENYLIST_PATTERNS: List[str] = [
    "<script",
    "javascript:",
    "onerror=",
    "onload=",
    "eval(",
    "expression(",
    "vbscript:",
    "data:text/html",
    "../",
    "..\\",
    "';--",
    '"; --',
    "' OR '1'='1",
    '" OR "1"="1',
]


class Settings(BaseSettings):
    """
    Application settings for the banana API service.

    All settings can be configured via environment variables.
    Settings are validated on instantiation to ensure correct configuration.

    Attributes:
        SERVICE_NAME: Service name reported to logs, traces and health checks
        SERVICE_VERSION: Service version reported to traces and health checks
        ENVIRONMENT: Deployment environment (development, staging, production)
        DEBUG: Enable debug mode (shows API docs)
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        JSON_LOGS: Render logs as JSON instead of console output
        ENABLE_TRACING: Export OpenTelemetry traces to OTLP_ENDPOINT
        DENYLIST_PATTERNS: Substrings that mark a request as unsafe
        ANALYTICS_MOCK_MODE: Serve generated analytics data
    """

    # Service identity
    SERVICE_NAME: str = Field(
        default="grafana-banana-api",
        description="Service name for logs, traces and health checks",
    )
    SERVICE_VERSION: str = Field(
        default="1.0.0",
        description="Service version",
    )
    ENVIRONMENT: str = Field(
        default="production",
        description="Deployment environment",
    )
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # Server configuration
    HOST: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    PORT: int = Field(
        default=5000,
        ge=1,
        le=65535,
        description="Server port number",
    )

    # Logging configuration
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    JSON_LOGS: bool = Field(
        default=True,
        description="Render logs as JSON for log aggregation",
    )

    # Tracing configuration
    ENABLE_TRACING: bool = Field(
        default=False,
        description="Export traces over OTLP",
    )
    OTLP_ENDPOINT: str = Field(
        default="http://tempo:4317",
        description="OTLP gRPC endpoint for trace export",
    )

    # Security configuration
    CORS_ALLOWED_ORIGINS: List[str] = Field(
        default=["*"],
        description="Origins allowed by CORS",
    )
    MAX_REQUEST_BODY_BYTES: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Maximum accepted request body size in bytes",
    )
    DENYLIST_PATTERNS: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DENYLIST_PATTERNS),
        description="Case-insensitive substrings rejected in bodies and query values",
    )

    # Rate limiting: fixed window per client IP with a bounded wait queue
    RATE_LIMIT_GLOBAL_LIMIT: int = Field(default=100, ge=1)
    RATE_LIMIT_GLOBAL_WINDOW_SECONDS: float = Field(default=60.0, gt=0)
    RATE_LIMIT_GLOBAL_QUEUE_LIMIT: int = Field(default=10, ge=0)

    RATE_LIMIT_API_LIMIT: int = Field(default=50, ge=1)
    RATE_LIMIT_API_WINDOW_SECONDS: float = Field(default=60.0, gt=0)
    RATE_LIMIT_API_QUEUE_LIMIT: int = Field(default=5, ge=0)

    RATE_LIMIT_STRICT_LIMIT: int = Field(default=10, ge=1)
    RATE_LIMIT_STRICT_WINDOW_SECONDS: float = Field(default=60.0, gt=0)
    RATE_LIMIT_STRICT_QUEUE_LIMIT: int = Field(default=2, ge=0)

    RATE_LIMIT_EXEMPT_PATHS: List[str] = Field(
        default=["/health", "/health/ready", "/health/live", "/metrics"],
        description="Paths skipped by the global rate limiter",
    )

    # Handlers
    MAX_FORECAST_DAYS: int = Field(
        default=365,
        ge=0,
        description="Largest accepted forecast length in days",
    )
    ANALYTICS_MOCK_MODE: bool = Field(
        default=True,
        description="Generate mock analytics instead of querying a warehouse",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("DENYLIST_PATTERNS")
    @classmethod
    def validate_denylist(cls, value: List[str]) -> List[str]:
        """
        Drop blank entries from the denylist.

        An empty pattern would match every request.

        Raises:
            ValueError: If no usable pattern remains
        """
        patterns = [pattern for pattern in value if pattern and pattern.strip()]
        if not patterns:
            raise ValueError("DENYLIST_PATTERNS must contain at least one pattern")
        return patterns

    @field_validator("OTLP_ENDPOINT")
    @classmethod
    def validate_otlp_endpoint(cls, value: str) -> str:
        """Strip the trailing slash and require an http(s) scheme."""
        value = value.rstrip("/")
        if not (value.startswith("http://") or value.startswith("https://")):
            raise ValueError(
                f"OTLP endpoint must start with http:// or https://, got: {value}"
            )
        return value

    @property
    def is_development(self) -> bool:
        """True when running in a development environment."""
        return self.ENVIRONMENT.lower() == "development"


# Global settings instance
settings = Settings()
