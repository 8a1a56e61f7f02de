"""Configuration management for fast sheet reader.

This module provides centralized configuration using pydantic-settings.
All configuration options can be set via environment variables with the
FSR_ prefix, or via a .env file in the working directory.

Environment Variables:
    FSR_HEADER_PREFIX: Prefix for synthesized column names (default: header_)
    FSR_HAS_HEADER: Treat the first row as the header (default: true)
    FSR_LOWER_CASE_HEADERS: Lowercase header names (default: false)
    FSR_OUTPUT_FORMAT: Serialization format of output sinks (default: json)
    FSR_MAX_FILE_SIZE_MB: Maximum workbook size in MB (default: 100)
    FSR_PROGRESS_LOG_INTERVAL: Log read progress every N rows (default: 10000)
    FSR_JSON_ENSURE_ASCII: Escape non-ASCII characters in JSON (default: false)
    FSR_LOG_LEVEL: Logging level (default: INFO)
    FSR_DEBUG: Enable debug mode (default: false)
    FSR_CORS_ORIGINS: Comma-separated CORS origins (default: *)
    FSR_SERVER_HOST: Server bind host (default: 0.0.0.0)
    FSR_SERVER_PORT: Server bind port (default: 8000)
"""

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SUPPORTED_OUTPUT_FORMATS: frozenset[str] = frozenset({"json"})


class Settings(BaseSettings):
    """Library and service settings loaded from environment variables.

    Example .env file:
        FSR_HEADER_PREFIX=col_
        FSR_LOG_LEVEL=DEBUG
        FSR_MAX_FILE_SIZE_MB=250
    """

    model_config = SettingsConfigDict(
        env_prefix="FSR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # Reading Defaults
    # =========================================================================

    header_prefix: str = "header_"
    """Prefix for synthesized column names when a sheet has no header row."""

    has_header: bool = True
    """Whether the first row of a sheet holds the column names."""

    lower_case_headers: bool = False
    """Lowercase header names (ignored when a schema is supplied)."""

    max_file_size_mb: int = 100
    """Maximum workbook size in megabytes."""

    progress_log_interval: int = 10000
    """Log read progress every N rows."""

    # =========================================================================
    # Output Settings
    # =========================================================================

    output_format: str = "json"
    """Serialization format used by output sinks."""

    json_ensure_ascii: bool = False
    """Escape non-ASCII characters when serializing records."""

    # =========================================================================
    # Logging Settings
    # =========================================================================

    log_level: str = "INFO"
    """Logging level: DEBUG, INFO, WARNING, ERROR, or CRITICAL."""

    debug: bool = False
    """Enable debug mode with additional logging and error details."""

    # =========================================================================
    # Server Settings
    # =========================================================================

    cors_origins: str = "*"
    """Comma-separated list of allowed CORS origins, or * for all."""

    server_host: str = "0.0.0.0"
    """Host address for the API server to bind to."""

    server_port: int = 8000
    """Port for the API server to listen on."""

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return upper_v

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        """Validate the output format is one the sinks can write."""
        lower_v = v.strip().lower()
        if lower_v not in SUPPORTED_OUTPUT_FORMATS:
            raise ValueError(
                f"Unsupported output format: {v}. "
                f"Must be one of: {', '.join(sorted(SUPPORTED_OUTPUT_FORMATS))}"
            )
        return lower_v

    @field_validator("header_prefix")
    @classmethod
    def validate_header_prefix(cls, v: str) -> str:
        """Validate the header prefix is not blank."""
        if not v.strip():
            raise ValueError("header_prefix must be a non-empty string")
        return v

    @field_validator("max_file_size_mb")
    @classmethod
    def validate_file_size(cls, v: int) -> int:
        """Validate file size is positive and reasonable."""
        if not 1 <= v <= 2048:
            raise ValueError(f"max_file_size_mb must be between 1 and 2048, got {v}")
        return v

    @field_validator("progress_log_interval")
    @classmethod
    def validate_progress_interval(cls, v: int) -> int:
        """Validate the progress interval is positive."""
        if v < 1:
            raise ValueError("progress_log_interval must be at least 1")
        return v

    @field_validator("server_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"server_port must be between 1 and 65535, got {v}")
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def log_level_int(self) -> int:
        """Get log level as integer for logging module."""
        level: int = getattr(logging, self.log_level)
        return level

    def to_safe_dict(self) -> dict[str, Any]:
        """Convert settings to a dictionary suitable for logging."""
        return {
            "header_prefix": self.header_prefix,
            "has_header": self.has_header,
            "lower_case_headers": self.lower_case_headers,
            "max_file_size_mb": self.max_file_size_mb,
            "progress_log_interval": self.progress_log_interval,
            "output_format": self.output_format,
            "json_ensure_ascii": self.json_ensure_ascii,
            "log_level": self.log_level,
            "debug": self.debug,
            "cors_origins": self.cors_origins,
            "server_host": self.server_host,
            "server_port": self.server_port,
        }


def validate_settings_on_startup(s: Settings) -> None:
    """Validate settings on API startup.

    Emits warnings for configurations that are legal but risky in
    production.

    Args:
        s: Settings instance to validate.
    """
    logger = logging.getLogger(__name__)

    if s.cors_origins == "*" and not s.debug:
        logger.warning(
            "CORS is configured to allow all origins (*). "
            "Consider restricting this in production."
        )

    if s.debug:
        logger.warning(
            "Debug mode is enabled. Error responses will include internal details."
        )

    logger.info(
        f"Configuration loaded: log_level={s.log_level}, debug={s.debug}, "
        f"max_file_size_mb={s.max_file_size_mb}, output_format={s.output_format}"
    )


# Create the global settings instance
settings = Settings()
