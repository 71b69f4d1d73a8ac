# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/http_client_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Shared HTTP Client Service.

This module owns the single httpx.AsyncClient the gateway uses to talk to
every FileMaker Server. Sharing one client gives connection reuse across
session and data calls, and one place where timeouts and TLS verification
are applied.

Every request is bounded by the configured timeouts so a slow script or an
unreachable server cannot hang a tool call; a timeout surfaces as
``httpx.TimeoutException`` and is treated by callers as a generic failure.
"""

# Future
from __future__ import annotations

# Standard
import logging
from typing import Optional, TYPE_CHECKING

# Third-Party
import httpx

if TYPE_CHECKING:
    # First-Party
    from fmgateway.config import Settings

logger = logging.getLogger(__name__)


def get_http_limits(settings: "Settings") -> httpx.Limits:
    """
    Get configured HTTPX Limits.

    Args:
        settings: Gateway settings.

    Returns:
        httpx.Limits: Connection limits from settings.
    """
    return httpx.Limits(
        max_connections=settings.http_max_connections,
        max_keepalive_connections=max(1, settings.http_max_connections // 2),
    )


def get_http_timeout(settings: "Settings") -> httpx.Timeout:
    """
    Get configured HTTPX Timeout.

    Args:
        settings: Gateway settings.

    Returns:
        httpx.Timeout: Connect timeout plus read/write/pool bounded by the read timeout.
    """
    return httpx.Timeout(settings.http_read_timeout, connect=settings.http_connect_timeout)


class HttpClientService:
    """
    Owner of the shared httpx.AsyncClient.

    The client is created by ``initialize()`` and released by ``close()``;
    both are driven by the gateway context lifecycle.

    Examples:
        >>> from fmgateway.config import Settings
        >>> svc = HttpClientService(Settings(_env_file=None))
        >>> svc.initialized
        False
    """

    def __init__(self, settings: "Settings", transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Initialize the wrapper (not the actual client).

        Args:
            settings: Gateway settings.
            transport: Optional transport override, e.g. ``httpx.MockTransport`` in tests.
        """
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def initialized(self) -> bool:
        """Whether the client exists.

        Returns:
            bool: True after ``initialize()`` and before ``close()``.
        """
        return self._client is not None

    async def initialize(self) -> None:
        """Create the HTTP client with configured limits, timeouts and TLS verification."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            limits=get_http_limits(self._settings),
            timeout=get_http_timeout(self._settings),
            verify=self._settings.fm_ssl_verify,
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            transport=self._transport,
        )
        if not self._settings.fm_ssl_verify:
            logger.warning("TLS certificate verification is disabled for FileMaker connections (FM_SSL_VERIFY=false)")
        logger.info(
            "HTTP client initialized: max_connections=%d, read_timeout=%ss",
            self._settings.http_max_connections,
            self._settings.http_read_timeout,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """
        Get the shared HTTP client.

        Returns:
            httpx.AsyncClient: The shared client instance.

        Raises:
            RuntimeError: If the client has not been initialized.
        """
        if self._client is None:
            raise RuntimeError("HttpClientService not initialized. Call initialize() first.")
        return self._client

    async def close(self) -> None:
        """Close the HTTP client and release all connections."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("HTTP client closed")
