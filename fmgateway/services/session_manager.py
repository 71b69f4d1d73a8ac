# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/session_manager.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

FileMaker Data API session manager.

Owns the authenticate-or-reuse decision. A token obtained from
``POST /sessions`` is stored in the credential cache under the target id and
reused until the cache expires it (before FileMaker Server's own idle timeout)
or a caller reports it rejected.

Authentication is serialized per target with an ``asyncio.Lock``: callers that
arrive while an authentication is in flight wait for it and reuse its token
instead of opening a second session.

Per-target lifecycle::

    NO_SESSION -> AUTHENTICATING -> ACTIVE -> (EXPIRED | INVALIDATED) -> NO_SESSION
"""

# Standard
import asyncio
import logging
from typing import Dict, Mapping, Optional, Set

# Third-Party
import httpx
import orjson
from pydantic import SecretStr

# First-Party
from fmgateway.cache.ttl_cache import TTLCache
from fmgateway.schemas import SessionEntry, SessionState, TargetProfile, UsernamePassword
from fmgateway.services.errors import AuthenticationError
from fmgateway.services.http_client_service import HttpClientService
from fmgateway.utils.redaction import redact_secrets
from fmgateway.utils.responses import describe_failure, describe_transport_error, parse_body

logger = logging.getLogger(__name__)

TOKEN_HEADER = "X-FM-Data-Access-Token"


class SessionManager:
    """Hands out valid Data API tokens per target.

    Attributes:
        auth_count: Number of authentication round-trips issued.
    """

    def __init__(self, targets: Mapping[str, TargetProfile], credential_cache: TTLCache, http: HttpClientService) -> None:
        """Initialize the session manager.

        Args:
            targets: Discovered targets keyed by id.
            credential_cache: Cache holding one ``SessionEntry`` per target id.
            http: Shared HTTP client service.
        """
        self._targets = targets
        self._cache = credential_cache
        self._http = http
        self._locks: Dict[str, asyncio.Lock] = {}
        self._authenticating: Set[str] = set()
        self.auth_count = 0

    def _lock_for(self, target_id: str) -> asyncio.Lock:
        """Get or create the authentication lock of a target.

        Args:
            target_id: Target identifier.

        Returns:
            asyncio.Lock: Lock serializing authentication for the target.
        """
        lock = self._locks.get(target_id)
        if lock is None:
            lock = self._locks[target_id] = asyncio.Lock()
        return lock

    def _cached_token(self, target_id: str) -> Optional[str]:
        """Return the live token of a target, if any.

        Args:
            target_id: Target identifier.

        Returns:
            Optional[str]: Token or None.
        """
        entry: Optional[SessionEntry] = self._cache.get(target_id)
        return entry.token.get_secret_value() if entry else None

    def get_target(self, target_id: str) -> TargetProfile:
        """Look up a configured target.

        Args:
            target_id: Target identifier.

        Returns:
            TargetProfile: The target.

        Raises:
            AuthenticationError: If the target is not configured.
        """
        target = self._targets.get(target_id)
        if target is None:
            raise AuthenticationError(f"Database not found: {target_id}")
        return target

    def session_state(self, target_id: str) -> SessionState:
        """Report the session state of a target.

        Args:
            target_id: Target identifier.

        Returns:
            SessionState: AUTHENTICATING while a login is in flight, ACTIVE with a live token, else NO_SESSION.
        """
        if target_id in self._authenticating:
            return SessionState.AUTHENTICATING
        if target_id in self._cache:
            return SessionState.ACTIVE
        return SessionState.NO_SESSION

    async def get_token(self, target_id: str) -> str:
        """Return a valid token for a target, authenticating when none is cached.

        Args:
            target_id: Target identifier.

        Returns:
            str: Data API bearer token.

        Raises:
            AuthenticationError: If the target is unknown or the backend rejects the login.
        """
        target = self.get_target(target_id)

        token = self._cached_token(target_id)
        if token:
            return token

        async with self._lock_for(target_id):
            # A concurrent caller may have authenticated while we waited for the lock
            token = self._cached_token(target_id)
            if token:
                logger.debug("Reusing session established concurrently for %s", target_id)
                return token

            self._authenticating.add(target_id)
            try:
                token = await self._authenticate(target)
            finally:
                self._authenticating.discard(target_id)

            self._cache.set(target_id, SessionEntry(target_id=target_id, token=SecretStr(token)))
            return token

    async def _authenticate(self, target: TargetProfile) -> str:
        """Open a Data API session.

        Account credentials are sent as HTTP basic auth, an api key as an
        ``FMID`` authorization header.

        Args:
            target: Target to log into.

        Returns:
            str: New session token.

        Raises:
            AuthenticationError: On rejection, transport failure, timeout or a body without token.
        """
        credentials = target.credentials
        if isinstance(credentials, UsernamePassword):
            request_kwargs = {"auth": httpx.BasicAuth(credentials.username, credentials.password.get_secret_value())}
        else:
            request_kwargs = {"headers": {"Authorization": f"FMID {credentials.api_key.get_secret_value()}"}}

        self.auth_count += 1
        logger.debug("Authenticating to %s (%s)", target.id, target.server)
        try:
            response = await self._http.client.post(f"{target.base_url}/sessions", json={}, **request_kwargs)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise AuthenticationError(self._failure(target, describe_transport_error(exc))) from exc

        if not response.is_success:
            logger.warning("Authentication rejected for %s: HTTP %d", target.id, response.status_code)
            raise AuthenticationError(self._failure(target, describe_failure(response)))

        token: Optional[str] = None
        try:
            body = parse_body(response)
            if isinstance(body, dict) and isinstance(body.get("response"), dict):
                token = body["response"].get("token")
        except orjson.JSONDecodeError:
            logger.debug("Session response for %s is not JSON; falling back to %s header", target.id, TOKEN_HEADER)
        token = token or response.headers.get(TOKEN_HEADER)
        if not token:
            raise AuthenticationError(self._failure(target, "no session token in response"))

        logger.info("Authenticated to FileMaker database %s", target.id)
        return token

    @staticmethod
    def _failure(target: TargetProfile, reason: str) -> str:
        """Format an authentication failure without leaking credentials.

        Args:
            target: Target that failed.
            reason: Backend or transport reason.

        Returns:
            str: Scrubbed message.
        """
        return redact_secrets(f"Authentication failed for {target.id}: {reason}", target.secrets())

    def invalidate(self, target_id: str, token: Optional[str] = None) -> None:
        """Drop the session of a target. Idempotent.

        Args:
            target_id: Target identifier.
            token: When given, only drop the session if it still holds this
                token, so a token refreshed by a concurrent caller survives.
        """
        if token is not None:
            current = self._cached_token(target_id)
            if current is not None and current != token:
                logger.debug("Session for %s already refreshed; keeping it", target_id)
                return
        if target_id in self._cache:
            logger.info("Invalidating session for %s", target_id)
        self._cache.delete(target_id)

    def clear(self) -> int:
        """Drop every cached session.

        Returns:
            int: Number of sessions dropped.
        """
        removed = self._cache.clear()
        logger.info("Session cache cleared (%d session(s))", removed)
        return removed
