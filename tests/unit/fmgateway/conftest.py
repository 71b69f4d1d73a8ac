# -*- coding: utf-8 -*-
"""Location: ./tests/unit/fmgateway/conftest.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Shared fixtures for fmgateway unit tests.
"""

# Third-Party
import httpx
import pytest
import pytest_asyncio

# First-Party
from fmgateway.config import Settings
from fmgateway.services.gateway_context import GatewayContext
from fmgateway.services.target_registry import discover
from tests.helpers.fake_filemaker import CONFIG_SOURCE, FakeFileMaker, SALES_PASSWORD


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, ignoring any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def targets():
    """Two targets: SALES with an account, HR with an api key."""
    return discover(CONFIG_SOURCE)


@pytest.fixture
def backend() -> FakeFileMaker:
    """Fresh fake FileMaker backend."""
    return FakeFileMaker()


@pytest_asyncio.fixture
async def context(settings, targets, backend):
    """Started gateway context wired to the fake backend."""
    ctx = GatewayContext(settings, targets, transport=httpx.MockTransport(backend.handler))
    await ctx.initialize()
    yield ctx
    await ctx.shutdown()


@pytest.fixture
def clock(monkeypatch):
    """Controllable wall clock for cache expiry.

    Returns a one-element list; tests advance time by adding to ``clock[0]``.
    """
    now = [1_000_000.0]
    monkeypatch.setattr("fmgateway.cache.ttl_cache.time.time", lambda: now[0])
    return now


@pytest_asyncio.fixture
async def malformed_context(settings, backend):
    """Started context whose only target has a host with an unparsable port."""
    bad = discover({"FM_SERVER_BAD": "fm.example.com:notaport", "FM_DATABASE_BAD": "Sales", "FM_ACCOUNT_BAD": "api", "FM_PASSWORD_BAD": SALES_PASSWORD})
    ctx = GatewayContext(settings, bad, transport=httpx.MockTransport(backend.handler))
    await ctx.initialize()
    yield ctx
    await ctx.shutdown()
