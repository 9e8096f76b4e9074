"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEARNPATH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="learnpath", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Viewer API
    api_host: str = Field(default="127.0.0.1", description="Viewer API host")
    api_port: int = Field(default=8100, description="Viewer API port")

    # Backend
    backend_base_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the learning-platform backend",
    )
    backend_timeout_seconds: float = Field(
        default=10.0, description="Timeout per backend request"
    )
    backend_retries: int = Field(
        default=1,
        ge=0,
        description="Extra attempts on transport errors (timeouts, resets)",
    )

    # Progression policy
    quiz_pass_threshold: int = Field(
        default=70, ge=0, le=100, description="Score needed to pass a quiz"
    )
    quiz_max_attempts: int = Field(
        default=2, ge=1, description="Maximum recorded attempts per quiz day"
    )

    # Local progress cache
    cache_backend: Literal["memory", "file", "redis"] = Field(
        default="file", description="Local progress cache backend"
    )
    cache_dir: str = Field(
        default=".learnpath", description="Directory for the file cache backend"
    )
    cache_key_prefix: str = Field(
        default="learnpath", description="Namespace prefix for cache keys"
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_to_file: bool = Field(default=True, description="Write rotating log files")
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
