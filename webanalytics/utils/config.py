# ==============================================================================
# Application Configuration
# ==============================================================================
"""
Configuration management using pydantic-settings.

All configuration is loaded from environment variables, with support for
.env files via python-dotenv.
"""

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file before any settings are instantiated
load_dotenv()


class PostgresSettings(BaseSettings):
    """PostgreSQL connection settings."""

    model_config = SettingsConfigDict(env_prefix="PG_")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="postgres", description="PostgreSQL username")
    password: str = Field(default="", description="PostgreSQL password")
    database: str = Field(default="webanalytics", description="Database name")
    schema_name: str = Field(default="webanalytics", description="Schema name")
    sslmode: str = Field(default="prefer", description="SSL mode")

    @property
    def connection_string(self) -> str:
        """Build PostgreSQL connection string."""
        return (
            f"postgresql://{self.user}:{self.password}@"
            f"{self.host}:{self.port}/{self.database}?sslmode={self.sslmode}"
        )


class ValkeySettings(BaseSettings):
    """Valkey (Redis-compatible) connection settings for run status tracking."""

    model_config = SettingsConfigDict(env_prefix="VALKEY_")

    host: str = Field(default="localhost", description="Valkey host")
    port: int = Field(default=6379, description="Valkey port")
    password: Optional[str] = Field(default=None, description="Valkey password")
    db: int = Field(default=0, description="Valkey database number")
    ssl: bool = Field(default=False, description="Use SSL/TLS connection")

    enabled: bool = Field(default=True, description="Record scheduler runs in Valkey")
    run_history_ttl_hours: int = Field(
        default=24 * 7, description="TTL for scheduler run history in hours"
    )

    @property
    def url(self) -> str:
        """Build Valkey connection URL."""
        scheme = "rediss" if self.ssl else "redis"
        if self.password:
            return f"{scheme}://:{self.password}@{self.host}:{self.port}/{self.db}"
        return f"{scheme}://{self.host}:{self.port}/{self.db}"


class StorageSettings(BaseSettings):
    """Selects the store implementation the pipeline is wired with."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    backend: Literal["postgresql", "memory"] = Field(
        default="postgresql",
        description="Store backend (postgresql, memory)",
    )


class AggregationSettings(BaseSettings):
    """Daily rollup and goal catch-up sweep settings."""

    model_config = SettingsConfigDict(env_prefix="AGGREGATION_")

    sweep_lookback_hours: int = Field(
        default=24, gt=0, description="Hours of recent events re-checked against goals"
    )
    retention_days: int = Field(
        default=90, gt=0, description="Raw events older than this are purged"
    )


class SchedulerSettings(BaseSettings):
    """Scheduled aggregation run settings."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    cron_hour: int = Field(default=1, ge=0, le=23, description="Hour of the daily run")
    cron_minute: int = Field(default=0, ge=0, le=59, description="Minute of the daily run")
    timezone: str = Field(default="UTC", description="Timezone of the cron expression")
    run_on_startup: bool = Field(default=True, description="Run once shortly after startup")
    startup_delay_seconds: int = Field(
        default=5, ge=0, description="Delay before the startup run"
    )


class IngestionSettings(BaseSettings):
    """Event ingestion settings."""

    model_config = SettingsConfigDict(env_prefix="INGEST_")

    batch_max_size: int = Field(
        default=100, gt=0, description="Maximum number of events per batch"
    )


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        extra="ignore",
    )

    # Nested settings
    postgres: PostgresSettings = Field(default_factory=PostgresSettings)
    valkey: ValkeySettings = Field(default_factory=ValkeySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)

    # General settings
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for subsequent calls.
    """
    return Settings()
