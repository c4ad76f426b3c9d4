"""
Centralized configuration management using Pydantic Settings.

Configuration is loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class RedisConfig(BaseSettings):
    """Redis connection configuration (coordination bus and flag store)."""

    model_config = SettingsConfigDict(env_prefix="FLAGCAST_REDIS_", env_file=".env", extra="ignore")

    enabled: bool = Field(
        default=True,
        description="Use Redis for the bus and flag store (False = in-memory, single instance)",
    )
    url: str = Field(default="redis://localhost:6379", description="Redis connection URL")
    socket_timeout: float = Field(
        default=5.0, ge=0.5, le=60.0,
        description="Socket timeout for store commands (seconds)",
    )
    reconnect_max_delay: float = Field(
        default=60.0, ge=1.0, le=600.0,
        description="Upper bound for the bus re-subscribe backoff (seconds)",
    )


class BusConfig(BaseSettings):
    """Coordination bus topic configuration."""

    model_config = SettingsConfigDict(env_prefix="FLAGCAST_BUS_", env_file=".env", extra="ignore")

    notifications_channel: str = Field(default="notifications", description="Notification topic")
    flags_channel: str = Field(default="flags:updates", description="Flag change topic")


class FlagsConfig(BaseSettings):
    """Flag store configuration."""

    model_config = SettingsConfigDict(env_prefix="FLAGCAST_FLAGS_", env_file=".env", extra="ignore")

    key_prefix: str = Field(default="flag:", description="Namespace prefix for flag keys in the store")
    scan_count: int = Field(
        default=100, ge=1, le=10000,
        description="COUNT hint for each cursor page when listing flags",
    )


class FanoutConfig(BaseSettings):
    """Fan-out engine and connection configuration."""

    model_config = SettingsConfigDict(env_prefix="FLAGCAST_FANOUT_", env_file=".env", extra="ignore")

    backlog_limit: int = Field(
        default=20, ge=1, le=10000,
        description="Number of recent notifications replayed to new clients",
    )
    outbound_queue_size: int = Field(
        default=256, ge=4, le=100000,
        description="Per-connection outbound queue size before messages are dropped",
    )
    max_connections: int = Field(
        default=1000, ge=1, le=100000,
        description="Max concurrently attached client connections",
    )


class Settings(BaseSettings):
    """Application-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="FLAGCAST_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # General
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=3001, description="HTTP port")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"],
        description="Origins allowed by the CORS middleware",
    )

    # Nested configs
    redis: RedisConfig = Field(default_factory=RedisConfig)
    bus: BusConfig = Field(default_factory=BusConfig)
    flags: FlagsConfig = Field(default_factory=FlagsConfig)
    fanout: FanoutConfig = Field(default_factory=FanoutConfig)


# Singleton settings instance
settings = Settings()
