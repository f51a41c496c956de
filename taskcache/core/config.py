"""
Configuration management using Pydantic Settings.

This module provides type-safe, validated configuration loading from environment
variables for the cache layer. Each service (auth, task) sets its own
CACHE_KEY_PREFIX so both can share one Redis instance without collisions.

Architecture:
- Flat Settings structure (no nesting)
- All config loaded from environment variables
- Type validation via Pydantic
- TTL settings bounded by MAX_TTL_SECONDS

Usage:
    from taskcache.core.config import get_settings

    settings = get_settings()
    redis_url = settings.redis_url

    if settings.is_production:
        # flush_all() is refused here
        ...
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskcache.core.constants import (
    GLOB_CHARACTERS,
    HEALTH_LATENCY_THRESHOLD_MS_DEFAULT,
    LOGIN_ATTEMPT_WINDOW_DEFAULT,
    MAX_LOGIN_ATTEMPTS_DEFAULT,
    MAX_RATE_LIMIT_WINDOW_SECONDS,
    MAX_TTL_SECONDS,
    PROFILE_TTL_DEFAULT,
    RATE_LIMIT_WINDOW_DEFAULT,
    REFRESH_TOKEN_TTL_DEFAULT,
    SCAN_BATCH_SIZE_DEFAULT,
    SESSION_TTL_DEFAULT,
)
from taskcache.core.enums import Environment


class Settings(BaseSettings):
    """
    Cache layer settings (flat structure).

    Loads configuration from environment variables. Every field has a default
    so the layer can start against a local Redis with no configuration.

    Configuration precedence:
        1. Environment variables
        2. Default values

    Returns:
        Settings: Cache configuration loaded from environment.
    """

    # Environment detection
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development, testing, ci, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    app_name: str = Field(
        default="task-manager-cache",
        description="Service name bound to every log line",
    )

    # Connection
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (e.g., redis://host:port/db)",
    )
    cache_key_prefix: str = Field(
        default="taskmanager:",
        description="Process-wide key prefix for multi-tenant isolation",
    )
    redis_max_connections: int = Field(
        default=50,
        description="Connection pool size shared by all cache components",
    )
    redis_socket_timeout: float = Field(
        default=5.0,
        description="Per-command socket timeout in seconds",
    )
    redis_connect_timeout: float = Field(
        default=10.0,
        description="Socket connect timeout in seconds",
    )
    redis_connect_retries: int = Field(
        default=3,
        description="Connection attempts after the first one before giving up",
    )
    redis_retry_backoff_base: float = Field(
        default=0.5,
        description="Initial reconnect delay in seconds (doubles per attempt)",
    )
    redis_retry_backoff_max: float = Field(
        default=5.0,
        description="Upper bound for a single reconnect delay in seconds",
    )

    # Entity TTLs
    session_ttl_seconds: int = Field(
        default=SESSION_TTL_DEFAULT,
        description="Default session lifetime in seconds",
    )
    refresh_token_ttl_seconds: int = Field(
        default=REFRESH_TOKEN_TTL_DEFAULT,
        description="Default refresh token lifetime in seconds",
    )
    profile_ttl_seconds: int = Field(
        default=PROFILE_TTL_DEFAULT,
        description="Default user profile cache lifetime in seconds",
    )

    # Rate limiting
    rate_limit_window_seconds: int = Field(
        default=RATE_LIMIT_WINDOW_DEFAULT,
        description="Default fixed window for API rate limiting in seconds",
    )
    login_attempt_window_seconds: int = Field(
        default=LOGIN_ATTEMPT_WINDOW_DEFAULT,
        description="Window for counting failed logins per email in seconds",
    )
    max_login_attempts: int = Field(
        default=MAX_LOGIN_ATTEMPTS_DEFAULT,
        description="Failed logins allowed per window before lockout",
    )

    # Maintenance
    maintenance_batch_size: int = Field(
        default=SCAN_BATCH_SIZE_DEFAULT,
        description="Keys processed per SCAN/pipeline batch during cleanup",
    )
    maintenance_interval_seconds: float = Field(
        default=3600.0,
        description="Delay between periodic cleanup runs in seconds",
    )

    # Health
    health_latency_threshold_ms: float = Field(
        default=HEALTH_LATENCY_THRESHOLD_MS_DEFAULT,
        description="Ping latency above which health is reported as degraded",
    )

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator(
        "session_ttl_seconds",
        "refresh_token_ttl_seconds",
        "profile_ttl_seconds",
    )
    @classmethod
    def validate_ttl(cls, v: int) -> int:
        """
        Validate entity TTLs are within the cache-wide bound.

        Args:
            v: TTL in seconds.

        Returns:
            int: Validated TTL.

        Raises:
            ValueError: If TTL is not between 1 and MAX_TTL_SECONDS.
        """
        if not 1 <= v <= MAX_TTL_SECONDS:
            raise ValueError(f"TTL must be between 1 and {MAX_TTL_SECONDS} seconds")
        return v

    @field_validator("rate_limit_window_seconds", "login_attempt_window_seconds")
    @classmethod
    def validate_window(cls, v: int) -> int:
        """
        Validate rate-limit windows are within 24 hours.

        Args:
            v: Window length in seconds.

        Returns:
            int: Validated window.

        Raises:
            ValueError: If window is not between 1 and 86400 seconds.
        """
        if not 1 <= v <= MAX_RATE_LIMIT_WINDOW_SECONDS:
            raise ValueError(
                f"Window must be between 1 and {MAX_RATE_LIMIT_WINDOW_SECONDS} seconds"
            )
        return v

    @field_validator("max_login_attempts", "maintenance_batch_size", "redis_max_connections")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """
        Validate counters and sizes are positive.

        Args:
            v: Value to check.

        Returns:
            int: Validated value.

        Raises:
            ValueError: If value is less than 1.
        """
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("redis_connect_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        """
        Validate retry count is not negative.

        Args:
            v: Number of retries.

        Returns:
            int: Validated retry count.

        Raises:
            ValueError: If retries is negative.
        """
        if v < 0:
            raise ValueError("redis_connect_retries cannot be negative")
        return v

    @field_validator("cache_key_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """
        Reject prefixes that would change SCAN pattern semantics.

        Args:
            v: Key prefix.

        Returns:
            str: Validated prefix.

        Raises:
            ValueError: If prefix contains glob characters or whitespace.
        """
        if any(ch in GLOB_CHARACTERS or ch.isspace() for ch in v):
            raise ValueError("cache_key_prefix cannot contain glob characters or whitespace")
        return v

    # Convenience properties for environment checks
    @property
    def is_development(self) -> bool:
        """
        Check if running in development environment.

        Returns:
            bool: True if environment is DEVELOPMENT, False otherwise.
        """
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_testing(self) -> bool:
        """
        Check if running in testing or CI environment.

        Returns:
            bool: True if environment is TESTING or CI, False otherwise.
        """
        return self.environment in (Environment.TESTING, Environment.CI)

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.

        Returns:
            bool: True if environment is PRODUCTION, False otherwise.
        """
        return self.environment == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once per process.

    Returns:
        Settings: Cached settings instance.
    """
    return Settings()
