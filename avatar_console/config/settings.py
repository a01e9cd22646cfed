"""Application Settings - Environment-based configuration.

Uses Pydantic Settings for validation and type coercion.

Credentials are read here once and handed to components at construction
time; components never look at the process environment themselves.
Conditional variables are required only when their feature is enabled.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from avatar_console.config.constants import CONTINUITY


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API bind host")
    api_port: int = Field(default=8081, ge=1024, le=65535, description="API port")
    log_level: Literal["DEBUG", "INFO", "WARN", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment name"
    )

    # Authentication
    api_key: str | None = Field(
        default=None,
        description="API key for authentication (required in production)",
    )
    api_key_header: str = Field(
        default="X-API-Key",
        description="Header name for API key",
    )
    auth_enabled: bool = Field(
        default=True,
        description="Enable API authentication (auto-disabled in development if no key)",
    )
    caller_header: str = Field(
        default="X-User-Id",
        description="Header carrying the authenticated caller's user id",
    )

    # Live Session Configuration
    max_concurrent_sessions: int = Field(
        default=CONTINUITY.MAX_CONCURRENT_SESSIONS,
        ge=1,
        le=500,
        description="Maximum concurrent live avatar sessions",
    )
    session_stop_timeout_s: float = Field(
        default=CONTINUITY.SESSION_STOP_TIMEOUT_S,
        gt=0,
        le=60,
        description="Bounded wait for the streaming service to acknowledge stop",
    )
    default_language: str = Field(
        default="en", description="Language tag used when a conversation has none"
    )

    # Summarization Configuration
    summary_engine: Literal["openai", "anthropic", "mock"] = Field(
        default="openai", description="Completion backend used for summaries"
    )
    openai_api_key: str | None = Field(
        default=None, description="OpenAI API key (unset -> fallback summaries)"
    )
    openai_model: str = Field(
        default="gpt-3.5-turbo", description="OpenAI model for summaries"
    )
    anthropic_api_key: str | None = Field(
        default=None, description="Anthropic API key (unset -> fallback summaries)"
    )
    anthropic_model: str = Field(
        default="claude-3-5-haiku-latest", description="Anthropic model for summaries"
    )
    summary_timeout_s: float = Field(
        default=CONTINUITY.SUMMARY_TIMEOUT_S,
        gt=0,
        le=120,
        description="Timeout for the summarization request",
    )
    summary_max_tokens: int = Field(
        default=CONTINUITY.SUMMARY_MAX_TOKENS,
        ge=64,
        le=4096,
        description="Completion token budget for summaries",
    )
    summary_temperature: float = Field(
        default=CONTINUITY.SUMMARY_TEMPERATURE, ge=0.0, le=2.0
    )

    # Avatar Streaming Configuration
    streaming_engine: Literal["http", "mock"] = Field(
        default="http", description="Streaming backend (mock for local development)"
    )
    streaming_api_key: str | None = Field(
        default=None, description="API key for the avatar streaming service"
    )
    streaming_base_url: str = Field(
        default="https://api.heygen.com", description="Streaming service base URL"
    )
    streaming_request_timeout_s: float = Field(
        default=10.0, gt=0, le=60, description="HTTP timeout for streaming API calls"
    )

    # Observability
    metrics_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    def model_post_init(self, __context) -> None:
        """Validate conditional requirements after model creation."""
        if self.environment == "production" and self.auth_enabled and not self.api_key:
            raise ValueError(
                "api_key is required when auth_enabled=true in production environment"
            )

        if (
            self.environment == "production"
            and self.streaming_engine == "http"
            and not self.streaming_api_key
        ):
            raise ValueError(
                "streaming_api_key is required when streaming_engine=http "
                "in production environment"
            )

    @property
    def summary_api_key(self) -> str | None:
        """Credential of the selected summary engine."""
        if self.summary_engine == "openai":
            return self.openai_api_key
        if self.summary_engine == "anthropic":
            return self.anthropic_api_key
        return None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
