#!/usr/bin/env python3
"""
Centralized Configuration Module using Pydantic Settings

This module provides type-safe, environment-based configuration for the
FireFerret caching layer. All configuration is centralized here so the
store drivers, the orchestrator and the logging setup read the same values.

Architectural Decision: Pydantic Settings for type safety and validation
- Environment variable loading with .env support
- Type validation at startup (fail fast on misconfiguration)
- Flat env-var fields with grouped, read-only views (settings.redis, settings.mongo, ...)
- Easy testing with reload_settings() and explicit Settings(...) construction

Author: System Architect
Date: 2026-10-12
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from fireferret.core.config.constants import DEFAULT_NAMESPACE
from fireferret.core.exceptions import ConfigurationError


class RedisSettings(BaseSettings):
    """
    Redis configuration for the key-value cache.

    STAGE-0.1: Redis connection configuration

    REDIS_SCAN_COUNT is the COUNT hint given to SCAN while enumerating
    sibling query keys for wide-match. REDIS_BATCH_SIZE bounds the number
    of IDs sent in one RPUSH when a QueryList is written.
    """

    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")

    REDIS_MAX_CONNECTIONS: int = Field(default=100, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")

    REDIS_SCAN_COUNT: int = Field(default=1000, gt=0, description="SCAN COUNT hint for key enumeration")
    REDIS_BATCH_SIZE: int = Field(default=1000, gt=0, description="Maximum IDs per RPUSH batch")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class MongoSettings(BaseSettings):
    """
    MongoDB configuration for the backing document store.

    STAGE-0.2: Document store configuration
    """

    MONGO_URI: str = Field(default="mongodb://localhost:27017", description="MongoDB connection URI")
    MONGO_DB_NAME: str = Field(default="test", description="Database to query")
    MONGO_COLLECTION_NAME: str = Field(default="documents", description="Collection to query")
    MONGO_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class CacheSettings(BaseSettings):
    """
    Cache indexing behaviour.

    STAGE-2: Cache strategy configuration

    CACHE_WIDE_MATCH lets a paginated miss be answered from a previously
    cached superset. CACHE_STREAM_NDJSON switches stream framing from a
    JSON array to newline-delimited JSON.
    """

    CACHE_NAMESPACE: str = Field(default=DEFAULT_NAMESPACE, description="Prefix for all query keys")
    CACHE_WIDE_MATCH: bool = Field(default=True, description="Enable the wide-match strategy")
    CACHE_STREAM_NDJSON: bool = Field(default=False, description="Frame streams as NDJSON")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class LoggingSettings(BaseSettings):
    """
    Logging configuration for structured logging.

    STAGE-L: Logging configuration

    Architectural Decision: structlog for production-grade logging
    """

    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class ApplicationSettings(BaseSettings):
    """
    General application settings.

    STAGE-0: Application initialization
    """

    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="FireFerret", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=True)


class Settings(BaseSettings):
    """
    Main settings class that aggregates all configuration sections.

    STAGE-0: Centralized configuration initialization

    Usage:
        from fireferret.core.config.settings import get_settings

        settings = get_settings()
        redis_host = settings.redis.REDIS_HOST
        wide_match = settings.cache.CACHE_WIDE_MATCH

    Architectural Benefits:
    - Single source of truth for all configuration
    - Type-safe access with IDE autocomplete
    - Validation at startup (fail fast)
    - Environment-specific configurations
    """

    # Redis settings
    REDIS_HOST: str = Field(default="localhost", description="Redis server host")
    REDIS_PORT: int = Field(default=6379, description="Redis server port")
    REDIS_DB: int = Field(default=0, description="Redis database number")
    REDIS_PASSWORD: str | None = Field(default=None, description="Redis password (if required)")
    REDIS_MAX_CONNECTIONS: int = Field(default=100, description="Maximum total connections")
    REDIS_SOCKET_TIMEOUT: int = Field(default=5, description="Socket timeout in seconds")
    REDIS_SOCKET_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")
    REDIS_HEALTH_CHECK_INTERVAL: int = Field(default=30, description="Health check interval in seconds")
    REDIS_SCAN_COUNT: int = Field(default=1000, gt=0, description="SCAN COUNT hint for key enumeration")
    REDIS_BATCH_SIZE: int = Field(default=1000, gt=0, description="Maximum IDs per RPUSH batch")

    # MongoDB settings
    MONGO_URI: str = Field(default="mongodb://localhost:27017", description="MongoDB connection URI")
    MONGO_DB_NAME: str = Field(default="test", description="Database to query")
    MONGO_COLLECTION_NAME: str = Field(default="documents", description="Collection to query")
    MONGO_CONNECT_TIMEOUT: int = Field(default=5, description="Connection timeout in seconds")

    # Cache settings
    CACHE_NAMESPACE: str = Field(default=DEFAULT_NAMESPACE, description="Prefix for all query keys")
    CACHE_WIDE_MATCH: bool = Field(default=True, description="Enable the wide-match strategy")
    CACHE_STREAM_NDJSON: bool = Field(default=False, description="Frame streams as NDJSON")

    # Logging settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: Literal["json", "console"] = Field(default="json", description="Log output format")

    # Application settings
    ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment"
    )
    APP_NAME: str = Field(default="FireFerret", description="Application name")
    APP_VERSION: str = Field(default="1.0.0", description="Application version")

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("CACHE_NAMESPACE")
    @classmethod
    def validate_namespace(cls, v):
        """Namespaces end up as the first key segment and may not contain ':'."""
        if not v or ":" in v:
            raise ValueError("CACHE_NAMESPACE must be non-empty and must not contain ':'")
        return v

    # Grouped views
    @property
    def redis(self) -> "RedisSettings":
        """Get Redis settings."""
        return RedisSettings(
            REDIS_HOST=self.REDIS_HOST,
            REDIS_PORT=self.REDIS_PORT,
            REDIS_DB=self.REDIS_DB,
            REDIS_PASSWORD=self.REDIS_PASSWORD,
            REDIS_MAX_CONNECTIONS=self.REDIS_MAX_CONNECTIONS,
            REDIS_SOCKET_TIMEOUT=self.REDIS_SOCKET_TIMEOUT,
            REDIS_SOCKET_CONNECT_TIMEOUT=self.REDIS_SOCKET_CONNECT_TIMEOUT,
            REDIS_HEALTH_CHECK_INTERVAL=self.REDIS_HEALTH_CHECK_INTERVAL,
            REDIS_SCAN_COUNT=self.REDIS_SCAN_COUNT,
            REDIS_BATCH_SIZE=self.REDIS_BATCH_SIZE,
        )

    @property
    def mongo(self) -> "MongoSettings":
        """Get MongoDB settings."""
        return MongoSettings(
            MONGO_URI=self.MONGO_URI,
            MONGO_DB_NAME=self.MONGO_DB_NAME,
            MONGO_COLLECTION_NAME=self.MONGO_COLLECTION_NAME,
            MONGO_CONNECT_TIMEOUT=self.MONGO_CONNECT_TIMEOUT,
        )

    @property
    def cache(self) -> "CacheSettings":
        """Get cache settings."""
        return CacheSettings(
            CACHE_NAMESPACE=self.CACHE_NAMESPACE,
            CACHE_WIDE_MATCH=self.CACHE_WIDE_MATCH,
            CACHE_STREAM_NDJSON=self.CACHE_STREAM_NDJSON,
        )

    @property
    def logging(self) -> "LoggingSettings":
        """Get logging settings."""
        return LoggingSettings(LOG_LEVEL=self.LOG_LEVEL, LOG_FORMAT=self.LOG_FORMAT)

    @property
    def app(self) -> "ApplicationSettings":
        """Get application settings."""
        return ApplicationSettings(
            ENVIRONMENT=self.ENVIRONMENT,
            APP_NAME=self.APP_NAME,
            APP_VERSION=self.APP_VERSION,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra environment variables
    )


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def _load_settings() -> Settings:
    try:
        return Settings()
    except PydanticValidationError as e:
        raise ConfigurationError(
            "Invalid FireFerret settings",
            scope="settings::load",
            details={"errors": e.errors(include_url=False, include_input=False)},
        ).with_suggestion("Check the environment variables and .env file") from e


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    STAGE-0.3: Settings initialization

    Returns:
        Settings: Global settings instance

    Raises:
        ConfigurationError: If the environment holds invalid values

    Store clients never read this implicitly once constructed; they are
    handed a Settings object and keep it as an instance field.
    """
    global _settings

    if _settings is None:
        _settings = _load_settings()

    return _settings


def reload_settings() -> Settings:
    """
    Reload settings (useful for testing).

    Returns:
        Settings: New settings instance

    Raises:
        ConfigurationError: If the environment holds invalid values
    """
    global _settings
    _settings = _load_settings()
    return _settings
