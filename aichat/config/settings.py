"""Application settings using Pydantic BaseSettings."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # Security
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:8080")
    rate_limit_rpm: int = Field(default=60)
    max_request_bytes: int = Field(default=1048576)

    # Authentication
    session_ttl_seconds: int = Field(default=86400)
    registration_enabled: bool = Field(default=False)

    # Database
    database_url: str = Field(default="sqlite:///./data/aichat.db")

    # Upstream chat-completion API
    ai_api_key: str = Field(default="")
    ai_base_url: str = Field(default="https://api.openai.com/v1")
    ai_model: str = Field(default="gpt-3.5-turbo")
    ai_models: str = Field(
        default="gpt-3.5-turbo,gpt-3.5-turbo-16k,gpt-4,gpt-4-turbo,gpt-4-turbo-preview"
    )
    ai_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    ai_thinking_default: str = Field(default="enabled")
    ai_timeout_seconds: float = Field(default=300.0, gt=0)

    # Relay
    relay_token_buffer: int = Field(default=100, gt=0)
    sse_disconnect_poll_seconds: float = Field(default=1.0, gt=0)

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def ai_models_list(self) -> List[str]:
        """Models offered to clients; the default model is always included."""
        models = [m.strip() for m in self.ai_models.split(",") if m.strip()]
        if self.ai_model and self.ai_model not in models:
            models.insert(0, self.ai_model)
        return models

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "staging", "production"}:
            raise ValueError("ENVIRONMENT must be one of: development, staging, production")
        return vv

    @field_validator("ai_thinking_default")
    @classmethod
    def validate_thinking_default(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"", "enabled", "disabled"}:
            raise ValueError("AI_THINKING_DEFAULT must be one of: enabled, disabled, or empty")
        return vv

    @field_validator("ai_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
