# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/request_executor.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Request Executor.

Performs Data API calls on behalf of the tool handlers:

1. Cacheable reads are answered from the result cache when a live entry
   exists, with no token lookup and no network traffic.
2. Otherwise a token is obtained from the session manager.
3. The call is sent and classified as ``OK``, ``AUTH_REJECTED`` (HTTP 401) or
   ``FAILED``. A rejected token is invalidated, a fresh one obtained and the
   call retried exactly once; any other failure is raised immediately.

Mutating calls (``cacheable=False``) never read or write the result cache.
A 2xx response is cached as returned, even when its payload reports an
application-level error such as a non-zero script result.
"""

# Standard
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Mapping, Optional

# Third-Party
import httpx
import orjson

# First-Party
from fmgateway.cache.cache_keys import make_cache_key
from fmgateway.cache.ttl_cache import TTLCache
from fmgateway.schemas import TargetProfile
from fmgateway.services.errors import RequestFailure
from fmgateway.services.http_client_service import HttpClientService
from fmgateway.services.session_manager import SessionManager
from fmgateway.utils.redaction import redact_secrets, sanitize_url_for_logging
from fmgateway.utils.responses import describe_failure, describe_transport_error, parse_body

logger = logging.getLogger(__name__)

# One original attempt plus one retry after re-authentication
MAX_ATTEMPTS = 2
AUTH_REJECTED_STATUS = 401


class OutcomeKind(Enum):
    """Classification of a single remote call."""

    OK = "ok"
    AUTH_REJECTED = "auth_rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class CallOutcome:
    """Result of one remote attempt.

    Examples:
        >>> CallOutcome.ok({"response": {}}).kind
        <OutcomeKind.OK: 'ok'>
        >>> CallOutcome.auth_rejected("Invalid FileMaker Data API token").status_code
        401
    """

    kind: OutcomeKind
    payload: Any = None
    message: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, payload: Any) -> "CallOutcome":
        """Successful call.

        Args:
            payload: Parsed response body.

        Returns:
            CallOutcome: OK outcome.
        """
        return cls(OutcomeKind.OK, payload=payload)

    @classmethod
    def auth_rejected(cls, message: str) -> "CallOutcome":
        """Token rejected by the backend.

        Args:
            message: Backend reason.

        Returns:
            CallOutcome: AUTH_REJECTED outcome.
        """
        return cls(OutcomeKind.AUTH_REJECTED, message=message, status_code=AUTH_REJECTED_STATUS)

    @classmethod
    def failed(cls, message: str, status_code: Optional[int] = None) -> "CallOutcome":
        """Any other failure, including transport errors and timeouts.

        Args:
            message: Backend or transport reason.
            status_code: HTTP status when the backend answered.

        Returns:
            CallOutcome: FAILED outcome.
        """
        return cls(OutcomeKind.FAILED, message=message, status_code=status_code)


class RequestExecutor:
    """Cache-first Data API caller with a single re-authentication retry.

    Attributes:
        remote_calls: Number of data/script calls sent to FileMaker (authentication excluded).
    """

    def __init__(self, sessions: SessionManager, result_cache: TTLCache, http: HttpClientService) -> None:
        """Initialize the executor.

        Args:
            sessions: Session manager handing out tokens.
            result_cache: Cache for results of cacheable operations.
            http: Shared HTTP client service.
        """
        self._sessions = sessions
        self._results = result_cache
        self._http = http
        self.remote_calls = 0

    async def execute(
        self,
        target_id: str,
        kind: str,
        method: str,
        path: str,
        body: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, Any]] = None,
        cacheable: bool = False,
        cache_params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Run one logical operation against a target.

        Args:
            target_id: Target identifier.
            kind: Operation kind, part of the cache key.
            method: HTTP method.
            path: Path below the database root, already percent-encoded.
            body: JSON body.
            params: Query string parameters.
            cacheable: True for side-effect-free reads.
            cache_params: Parameters identifying the result; defaults to path, params and body.

        Returns:
            Any: Parsed response body.

        Raises:
            AuthenticationError: If no token can be obtained.
            RequestFailure: On any other failure, including a second authorization rejection.
        """
        target = self._sessions.get_target(target_id)

        cache_key: Optional[str] = None
        if cacheable:
            if cache_params is None:
                cache_params = {"path": path, "params": params, "body": body}
            cache_key = make_cache_key(kind, target_id, cache_params)
            cached = self._results.get(cache_key)
            if cached is not None:
                logger.debug("Result cache hit: %s on %s", kind, target_id)
                return cached

        token = await self._sessions.get_token(target_id)

        for attempt in range(1, MAX_ATTEMPTS + 1):
            outcome = await self._send(target, method, f"{target.base_url}{path}", body, params, token)

            if outcome.kind is OutcomeKind.OK:
                if cache_key is not None:
                    self._results.set(cache_key, outcome.payload)
                return outcome.payload

            if outcome.kind is OutcomeKind.AUTH_REJECTED and attempt < MAX_ATTEMPTS:
                logger.warning("Session for %s was rejected; re-authenticating and retrying once", target_id)
                self._sessions.invalidate(target_id, token)
                token = await self._sessions.get_token(target_id)
                continue

            logger.error("%s %s on %s failed: %s", method, kind, target_id, outcome.message)
            raise RequestFailure(f"Request failed: {outcome.message}", status_code=outcome.status_code)

        raise RequestFailure("Request failed: retry budget exhausted")  # pragma: no cover

    async def fetch_server_info(self, target_id: str, kind: str, path: str) -> Any:
        """GET a server-level endpoint that needs no session (cached).

        Args:
            target_id: Target whose server is asked.
            kind: Operation kind, part of the cache key.
            path: Path below ``/fmi/data/{version}``, e.g. ``/productInfo``.

        Returns:
            Any: Parsed response body.

        Raises:
            AuthenticationError: If the target is not configured.
            RequestFailure: If the call fails.
        """
        target = self._sessions.get_target(target_id)
        cache_key = make_cache_key(kind, target_id, {"path": path})
        cached = self._results.get(cache_key)
        if cached is not None:
            return cached

        outcome = await self._send(target, "GET", f"{target.server_url}{path}", None, None, None)
        if outcome.kind is not OutcomeKind.OK:
            logger.error("GET %s on %s failed: %s", kind, target_id, outcome.message)
            raise RequestFailure(f"Request failed: {outcome.message}", status_code=outcome.status_code)
        self._results.set(cache_key, outcome.payload)
        return outcome.payload

    async def _send(
        self,
        target: TargetProfile,
        method: str,
        url: str,
        body: Optional[Mapping[str, Any]],
        params: Optional[Mapping[str, Any]],
        token: Optional[str],
    ) -> CallOutcome:
        """Send one attempt and classify the result.

        Args:
            target: Target profile.
            method: HTTP method.
            url: Absolute URL.
            body: JSON body.
            params: Query string parameters.
            token: Bearer token, or None for endpoints without a session.

        Returns:
            CallOutcome: Classified outcome; never raises for HTTP or transport failures.
        """
        secrets = target.secrets() + ([token] if token else [])
        headers = {"Authorization": f"Bearer {token}"} if token else None
        self.remote_calls += 1

        try:
            response = await self._http.client.request(
                method,
                url,
                json=dict(body) if body is not None else None,
                params=dict(params) if params else None,
                headers=headers,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            return CallOutcome.failed(redact_secrets(describe_transport_error(exc), secrets))

        logger.debug("%s %s -> %d", method, sanitize_url_for_logging(url), response.status_code)

        if response.status_code == AUTH_REJECTED_STATUS:
            return CallOutcome.auth_rejected(redact_secrets(describe_failure(response), secrets))
        if not response.is_success:
            return CallOutcome.failed(redact_secrets(describe_failure(response), secrets), status_code=response.status_code)

        try:
            return CallOutcome.ok(parse_body(response))
        except orjson.JSONDecodeError:
            return CallOutcome.failed("Backend returned a non-JSON response", status_code=response.status_code)

    def clear_results(self) -> int:
        """Drop every cached result.

        Returns:
            int: Number of results dropped.
        """
        removed = self._results.clear()
        logger.info("Result cache cleared (%d entries)", removed)
        return removed
