"""
Configuration for Bundle Relay Service.

Uses Pydantic settings for environment-based configuration. The backend
endpoint list and listening port can also be supplied on the command line,
which overrides the environment.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Environment(str, Enum):
    """Defines application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Configuration settings for Bundle Relay Service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BUNDLE_RELAY_",
        case_sensitive=False,
        extra="ignore",
    )

    # Service identity
    SERVICE_NAME: str = "bundle-relay-service"

    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Runtime environment for the service",
    )

    # Logging configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # HTTP server configuration
    HTTP_HOST: str = Field(default="0.0.0.0", description="HTTP server host")
    HTTP_PORT: int = Field(default=18545, ge=0, le=65535, description="Relay listener port")
    METRICS_PORT: int = Field(
        default=9090, ge=0, le=65535, description="Prometheus metrics listener port"
    )

    # Backend fan-out
    BACKEND_URLS: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Backend JSON-RPC endpoints every admitted bundle is relayed to",
    )
    BACKEND_TIMEOUT_SECONDS: float = Field(
        default=10.0, gt=0, description="Upper bound on a single backend delivery"
    )
    HTTP_CLIENT_CONNECT_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)

    # Rate limiting configuration (limits notation, e.g. "10/minute")
    PRE_AUTH_RATE_LIMIT: str = Field(
        default="10/minute",
        description="Per Authorization header limit applied before authentication",
    )
    GLOBAL_RATE_LIMIT: str = Field(
        default="30/15 seconds",
        description="Process-wide limit applied to authenticated requests",
    )
    RATE_LIMIT_STORAGE_URI: str = Field(
        default="async+memory://",
        description="limits storage backend, e.g. async+memory:// or async+redis://host:6379",
    )

    # Credential store
    CREDENTIAL_STORE: Literal["redis", "static"] = Field(
        default="redis", description="Credential store backend used for API key lookup"
    )
    REDIS_URL: str = Field(
        default="redis://localhost:6379", description="Redis URL for the credential store"
    )
    CREDENTIAL_KEY_PREFIX: str = Field(
        default="relay:apikey:",
        description="Redis key prefix; each key is a set of owners for one API key",
    )
    STATIC_API_KEYS: dict[str, str] = Field(
        default_factory=dict,
        description="Owner to API key mapping used by the static credential store",
    )

    # Distributed tracing; exceptions are reported as events on the request span
    ENABLE_TRACING: bool = Field(default=True, description="Enable distributed tracing")
    TRACING_EXPORTER: Literal["otlp", "console", "none"] = Field(
        default="otlp", description="Span exporter: OTLP over HTTP, stdout, or record only"
    )
    OTLP_TRACES_ENDPOINT: str = Field(
        default="http://localhost:4318/v1/traces",
        description="OTLP/HTTP traces endpoint (Jaeger or an OpenTelemetry collector)",
    )

    @field_validator("BACKEND_URLS", mode="before")
    @classmethod
    def split_backend_urls(cls, v: Any) -> Any:
        """Accept a comma-separated string or a JSON list as well as a list."""
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [url.strip() for url in v.split(",") if url.strip()]
        return v

    def is_development(self) -> bool:
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION


# Global settings instance
settings = Settings()
