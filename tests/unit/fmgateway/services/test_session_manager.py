# -*- coding: utf-8 -*-
"""Location: ./tests/unit/fmgateway/services/test_session_manager.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Unit tests for the Data API session manager.
"""

# Standard
import asyncio
import base64
import logging

# Third-Party
import httpx
import pytest

# First-Party
from fmgateway.schemas import SessionState
from fmgateway.services.errors import AuthenticationError
from tests.helpers.fake_filemaker import fm_error, HR_API_KEY, SALES_PASSWORD


@pytest.mark.asyncio
async def test_token_is_reused(context, backend):
    sessions = context.sessions
    first = await sessions.get_token("SALES")
    second = await sessions.get_token("SALES")

    assert first == second
    assert backend.auth_calls == 1
    assert sessions.session_state("SALES") is SessionState.ACTIVE


@pytest.mark.asyncio
async def test_targets_have_independent_sessions(context, backend):
    sales = await context.sessions.get_token("SALES")
    hr = await context.sessions.get_token("HR")

    assert sales != hr
    assert backend.auth_calls == 2


@pytest.mark.asyncio
async def test_basic_auth_for_account_credentials(context, backend):
    await context.sessions.get_token("SALES")

    login = backend.requests[0]
    assert login.method == "POST"
    assert login.url.path == "/fmi/data/v1/databases/Sales/sessions"
    expected = base64.b64encode(f"api:{SALES_PASSWORD}".encode()).decode()
    assert login.headers["Authorization"] == f"Basic {expected}"


@pytest.mark.asyncio
async def test_fmid_header_for_api_key(context, backend):
    await context.sessions.get_token("HR")
    assert backend.requests[0].headers["Authorization"] == f"FMID {HR_API_KEY}"


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_authentication(context, backend):
    backend.auth_gate = asyncio.Event()
    tasks = [asyncio.create_task(context.sessions.get_token("SALES")) for _ in range(5)]
    await asyncio.sleep(0.01)

    assert context.sessions.session_state("SALES") is SessionState.AUTHENTICATING
    backend.auth_gate.set()
    tokens = await asyncio.gather(*tasks)

    assert len(set(tokens)) == 1
    assert backend.auth_calls == 1


@pytest.mark.asyncio
async def test_session_expires_with_session_ttl(context, backend, clock):
    await context.sessions.get_token("SALES")
    clock[0] += context.settings.session_ttl

    assert context.sessions.session_state("SALES") is SessionState.NO_SESSION
    await context.sessions.get_token("SALES")
    assert backend.auth_calls == 2


@pytest.mark.asyncio
async def test_invalidate_is_idempotent(context, backend):
    await context.sessions.get_token("SALES")
    context.sessions.invalidate("SALES")
    context.sessions.invalidate("SALES")

    assert context.sessions.session_state("SALES") is SessionState.NO_SESSION
    await context.sessions.get_token("SALES")
    assert backend.auth_calls == 2


@pytest.mark.asyncio
async def test_invalidate_with_stale_token_keeps_fresh_session(context):
    old = await context.sessions.get_token("SALES")
    context.sessions.invalidate("SALES", old)
    fresh = await context.sessions.get_token("SALES")

    context.sessions.invalidate("SALES", old)

    assert await context.sessions.get_token("SALES") == fresh


@pytest.mark.asyncio
async def test_unknown_target(context, backend):
    with pytest.raises(AuthenticationError, match="Database not found: NOPE"):
        await context.sessions.get_token("NOPE")
    assert backend.auth_calls == 0


@pytest.mark.asyncio
async def test_rejected_login_is_reported_without_secrets(context, backend, caplog):
    backend.login = lambda request: fm_error(401, "212", f"Invalid user account and/or password ({SALES_PASSWORD})")

    with caplog.at_level(logging.DEBUG):
        with pytest.raises(AuthenticationError) as excinfo:
            await context.sessions.get_token("SALES")

    message = str(excinfo.value)
    assert message.startswith("Authentication failed for SALES: Invalid user account and/or password")
    assert SALES_PASSWORD not in message
    assert SALES_PASSWORD not in caplog.text
    assert context.sessions.session_state("SALES") is SessionState.NO_SESSION


@pytest.mark.asyncio
async def test_login_transport_error(context, backend):
    def refuse(request):
        raise httpx.ConnectError("Connection refused", request=request)

    backend.login = refuse

    with pytest.raises(AuthenticationError, match="ConnectError: Connection refused"):
        await context.sessions.get_token("HR")


@pytest.mark.asyncio
async def test_login_timeout(context, backend):
    def slow(request):
        raise httpx.ReadTimeout("timed out", request=request)

    backend.login = slow

    with pytest.raises(AuthenticationError, match=r"Request timed out \(ReadTimeout\)"):
        await context.sessions.get_token("HR")
    assert HR_API_KEY not in str(backend.requests[0].url)


@pytest.mark.asyncio
async def test_token_read_from_header_when_body_has_none(context, backend):
    backend.login = lambda request: httpx.Response(200, headers={"X-FM-Data-Access-Token": "header-token-123"}, content=b"")
    assert await context.sessions.get_token("SALES") == "header-token-123"


@pytest.mark.asyncio
async def test_missing_token_is_an_authentication_error(context, backend):
    backend.login = lambda request: httpx.Response(200, json={"response": {}})
    with pytest.raises(AuthenticationError, match="no session token in response"):
        await context.sessions.get_token("SALES")


@pytest.mark.asyncio
async def test_clear_drops_all_sessions(context, backend):
    await context.sessions.get_token("SALES")
    await context.sessions.get_token("HR")

    assert context.sessions.clear() == 2
    assert context.sessions.clear() == 0
    await context.sessions.get_token("SALES")
    assert backend.auth_calls == 3


@pytest.mark.asyncio
async def test_malformed_host_is_an_authentication_error(malformed_context, backend):
    with pytest.raises(AuthenticationError, match="Authentication failed for BAD: InvalidURL"):
        await malformed_context.sessions.get_token("BAD")
    assert backend.requests == []
    assert malformed_context.sessions.session_state("BAD") is SessionState.NO_SESSION
