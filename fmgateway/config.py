# -*- coding: utf-8 -*-
"""Location: ./fmgateway/config.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

FileMaker MCP Gateway configuration.

Global scalars are read with pydantic-settings from the process environment
and an optional ``.env`` file. Per-database settings (``FM_SERVER_<ID>`` and
friends) form a dynamic namespace and are parsed separately by
``fmgateway.services.target_registry``.

Environment variables:
    FM_PROTOCOL: ``http`` or ``https`` (default: https)
    FM_API_VERSION: Data API version segment (default: v1)
    FM_SSL_VERIFY: Verify the server certificate (default: false)
    SESSION_TTL: Seconds a Data API token is reused (default: 780)
    CACHE_TTL: Seconds a cached read result is served (default: 840)
    FM_BACKEND_SESSION_TIMEOUT: Server idle session timeout (default: 900)
"""

# Standard
from functools import lru_cache
from typing import Literal

# Third-Party
from pydantic import Field, field_validator, model_validator, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

# First-Party
from fmgateway.services.errors import ConfigurationError


class Settings(BaseSettings):
    """Gateway settings.

    Examples:
        >>> s = Settings(_env_file=None, session_ttl=60, cache_ttl=120)
        >>> (s.session_ttl, s.cache_ttl, s.fm_protocol)
        (60, 120, 'https')
    """

    # FileMaker Data API
    fm_protocol: Literal["http", "https"] = Field(default="https", description="Scheme used to reach FileMaker Server")
    fm_api_version: str = Field(default="v1", description="Data API version path segment (v1, v2 or vLatest)")
    fm_ssl_verify: bool = Field(default=False, description="Verify TLS certificates. FileMaker Server installs often use self-signed certificates.")
    fm_backend_session_timeout: int = Field(default=900, gt=0, description="Idle timeout after which FileMaker Server drops a Data API session")

    # Caches
    session_ttl: int = Field(default=780, gt=0, description="Seconds a session token is reused before re-authenticating")
    cache_ttl: int = Field(default=840, gt=0, description="Seconds a cached read result is served")
    session_check_period: float = Field(default=60.0, gt=0, description="Interval between session cache sweeps")
    cache_check_period: float = Field(default=120.0, gt=0, description="Interval between result cache sweeps")
    cache_max_size: int = Field(default=10000, gt=0, description="Maximum number of cached read results")

    # HTTP client
    http_connect_timeout: float = Field(default=5.0, gt=0, description="Timeout in seconds for establishing connections")
    http_read_timeout: float = Field(default=60.0, gt=0, description="Timeout in seconds for reading a response; bounds slow scripts")
    http_max_connections: int = Field(default=50, gt=0, description="Maximum concurrent connections to FileMaker servers")

    # Server
    log_level: str = Field(default="INFO", description="Logging level")
    mcp_transport: Literal["stdio", "http"] = Field(default="stdio", description="MCP transport")
    mcp_host: str = Field(default="127.0.0.1", description="HTTP transport bind host")
    mcp_port: int = Field(default=9010, description="HTTP transport bind port")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("fm_protocol", mode="before")
    @classmethod
    def _normalize_protocol(cls, value):
        """Accept ``HTTPS`` and similar spellings.

        Args:
            value: Raw protocol value.

        Returns:
            Lower-cased protocol string, or the value untouched if not a string.
        """
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        """Upper-case and check the logging level name.

        Args:
            value: Raw level name.

        Returns:
            str: Upper-cased level name.

        Raises:
            ValueError: If the name is not a standard logging level.

        Examples:
            >>> Settings(_env_file=None, log_level="debug").log_level
            'DEBUG'
        """
        level = value.strip().upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"log_level must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG (got {value!r})")
        return level

    @model_validator(mode="after")
    def _session_ttl_below_backend_timeout(self) -> "Settings":
        """Tokens must be rotated before FileMaker Server expires them.

        Returns:
            The validated settings.

        Raises:
            ValueError: If ``session_ttl`` is not strictly below the backend timeout.
        """
        if self.session_ttl >= self.fm_backend_session_timeout:
            raise ValueError(f"session_ttl ({self.session_ttl}s) must be lower than fm_backend_session_timeout ({self.fm_backend_session_timeout}s)")
        return self


def load_settings(**overrides) -> Settings:
    """Build settings, translating validation errors into ``ConfigurationError``.

    Args:
        **overrides: Explicit field values taking precedence over the environment.

    Returns:
        Settings: Validated settings.

    Raises:
        ConfigurationError: If the environment holds invalid values.

    Examples:
        >>> load_settings(_env_file=None, cache_ttl=30).cache_ttl
        30
        >>> load_settings(_env_file=None, fm_protocol="gopher")
        Traceback (most recent call last):
        ...
        fmgateway.services.errors.ConfigurationError: Invalid gateway settings: ...
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid gateway settings: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the cached process-wide settings.

    Returns:
        Settings: Loaded once from the environment.
    """
    return load_settings()
