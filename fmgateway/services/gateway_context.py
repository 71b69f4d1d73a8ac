# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/gateway_context.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Gateway context.

Process-lifetime owner of the gateway state: discovered targets, the shared
HTTP client, the credential and result caches, and the services built on
them. The context is constructed once at startup and handed to the MCP
server; nothing reaches the caches through module globals, so tests build a
fresh context per case.
"""

# Standard
import logging
from typing import Mapping, Optional

# Third-Party
import httpx

# First-Party
from fmgateway.cache.ttl_cache import TTLCache
from fmgateway.config import get_settings, Settings
from fmgateway.schemas import TargetProfile
from fmgateway.services.filemaker_service import FileMakerService
from fmgateway.services.http_client_service import HttpClientService
from fmgateway.services.request_executor import RequestExecutor
from fmgateway.services.session_manager import SessionManager
from fmgateway.services.target_registry import discover, load_config_source

logger = logging.getLogger(__name__)


class GatewayContext:
    """Wires caches, session manager, executor and service together.

    Attributes:
        settings: Gateway settings.
        targets: Discovered targets.
        http: Shared HTTP client service.
        session_cache: Credential cache (``session_ttl``).
        result_cache: Result cache (``cache_ttl``).
        sessions: Session manager.
        executor: Request executor.
        service: Tool handlers.
    """

    def __init__(self, settings: Settings, targets: Mapping[str, TargetProfile], transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Build the context.

        Args:
            settings: Gateway settings.
            targets: Discovered targets keyed by id.
            transport: Optional httpx transport override (tests).
        """
        self.settings = settings
        self.targets = dict(targets)
        self.http = HttpClientService(settings, transport=transport)
        self.session_cache = TTLCache(ttl=settings.session_ttl, check_period=settings.session_check_period, name="session")
        self.result_cache = TTLCache(ttl=settings.cache_ttl, max_size=settings.cache_max_size, check_period=settings.cache_check_period, name="data")
        self.sessions = SessionManager(self.targets, self.session_cache, self.http)
        self.executor = RequestExecutor(self.sessions, self.result_cache, self.http)
        self.service = FileMakerService(self.targets, self.sessions, self.executor)
        self._started = False

    @classmethod
    def from_environment(cls, settings: Optional[Settings] = None, config_source: Optional[Mapping[str, str]] = None) -> "GatewayContext":
        """Build a context from settings and the ``FM_*_<ID>`` configuration space.

        Args:
            settings: Settings; loaded from the environment when omitted.
            config_source: Flat configuration; read from ``.env`` and the environment when omitted.

        Returns:
            GatewayContext: Ready to ``initialize()``.

        Raises:
            ConfigurationError: If settings are invalid or no target is valid.
        """
        settings = settings or get_settings()
        if config_source is None:
            config_source = load_config_source()
        targets = discover(config_source, protocol=settings.fm_protocol, api_version=settings.fm_api_version)
        return cls(settings, targets)

    async def initialize(self) -> None:
        """Open the HTTP client and start the cache sweeps. Idempotent."""
        if self._started:
            return
        await self.http.initialize()
        await self.session_cache.initialize()
        await self.result_cache.initialize()
        self._started = True
        logger.info("Gateway context started for %d database(s)", len(self.targets))

    async def shutdown(self) -> None:
        """Stop the sweeps, drop cached state and close the HTTP client."""
        if not self._started:
            return
        await self.session_cache.shutdown()
        await self.result_cache.shutdown()
        await self.http.close()
        self._started = False
        logger.info("Gateway context stopped")
