# -*- coding: utf-8 -*-
"""Location: ./tests/unit/fmgateway/services/test_filemaker_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Unit tests for the tool handlers.
"""

# Standard
import json
from unittest.mock import AsyncMock

# Third-Party
import pytest

# First-Party
from fmgateway.schemas import SessionState
from tests.helpers.fake_filemaker import fm_error, SALES_PASSWORD


@pytest.mark.asyncio
async def test_list_targets(context, backend):
    result = context.service.list_targets()
    assert result.success
    assert result.data == {"databases": ["HR", "SALES"], "count": 2}
    assert backend.requests == []


@pytest.mark.asyncio
async def test_test_target_success(context):
    result = await context.service.test_target("SALES")
    assert result.success
    assert result.message == "Connection successful to SALES"
    assert context.sessions.session_state("SALES") is SessionState.ACTIVE


@pytest.mark.asyncio
async def test_test_target_failure(context, backend):
    backend.login = lambda request: fm_error(401, "212", "Invalid user account and/or password; please try again")

    result = await context.service.test_target("SALES")

    assert not result.success
    assert result.error == "Connection failed to SALES: Authentication failed for SALES: Invalid user account and/or password; please try again"


@pytest.mark.asyncio
async def test_unknown_database(context):
    result = await context.service.get_metadata("NOPE")
    assert not result.success
    assert result.error == "Database not found: NOPE"


@pytest.mark.asyncio
async def test_get_metadata_returns_response_member(context, backend):
    backend.routes[("GET", "/layouts")] = {"response": {"layouts": [{"name": "Customers"}]}, "messages": [{"code": "0", "message": "OK"}]}

    result = await context.service.get_metadata("SALES")

    assert result.success
    assert result.data == {"layouts": [{"name": "Customers"}]}


@pytest.mark.asyncio
async def test_layout_names_are_percent_encoded(context, backend):
    await context.service.get_layout_metadata("SALES", "Invoices / Open")
    assert backend.requests[-1].url.raw_path.decode().endswith("/layouts/Invoices%20%2F%20Open")


@pytest.mark.asyncio
async def test_missing_layout_is_rejected_before_any_call(context, backend):
    result = await context.service.get_layout_metadata("SALES", "")
    assert result.error == "Layout is required"
    assert backend.requests == []


@pytest.mark.asyncio
async def test_query_without_criteria_lists_records(context, backend):
    await context.service.query_records("SALES", "Customers")

    request = backend.requests[-1]
    assert request.method == "GET"
    assert request.url.path.endswith("/layouts/Customers/records")
    assert request.url.params["_limit"] == "100"
    assert request.url.params["_offset"] == "1"


@pytest.mark.asyncio
async def test_query_listing_passes_sort_as_json(context, backend):
    sort = [{"fieldName": "Name", "sortOrder": "descend"}]
    await context.service.query_records("SALES", "Customers", sort=sort, limit=5, offset=6)

    params = backend.requests[-1].url.params
    assert json.loads(params["_sort"]) == sort
    assert (params["_limit"], params["_offset"]) == ("5", "6")


@pytest.mark.asyncio
async def test_query_with_criteria_uses_find(context, backend):
    backend.routes[("POST", "/layouts/Customers/_find")] = {"response": {"data": [{"fieldData": {"City": "Paris"}}]}, "messages": []}

    result = await context.service.query_records("SALES", "Customers", query=[{"City": "Paris"}], limit=10)

    request = backend.requests[-1]
    assert request.method == "POST"
    assert json.loads(request.content) == {"query": [{"City": "Paris"}], "limit": 10}
    assert result.data == {"data": [{"fieldData": {"City": "Paris"}}]}


@pytest.mark.asyncio
async def test_distinct_finds_are_cached_separately(context, backend):
    await context.service.query_records("SALES", "Customers", query=[{"City": "Paris"}])
    await context.service.query_records("SALES", "Customers", query=[{"City": "Lyon"}])
    await context.service.query_records("SALES", "Customers", query=[{"City": "Paris"}])
    await context.service.query_records("SALES", "Customers")
    assert backend.data_calls == 3


@pytest.mark.asyncio
async def test_get_record(context, backend):
    await context.service.get_record("SALES", "Customers", "42")
    assert backend.requests[-1].url.path.endswith("/layouts/Customers/records/42")

    missing = await context.service.get_record("SALES", "Customers", "")
    assert missing.error == "Record ID is required"


@pytest.mark.asyncio
async def test_create_record(context, backend):
    backend.routes[("POST", "/layouts/Customers/records")] = {"response": {"recordId": "7", "modId": "0"}, "messages": []}

    result = await context.service.create_record("SALES", "Customers", {"Name": "Ada"})

    assert result.success
    assert result.data == {"recordId": "7", "modId": "0"}
    assert json.loads(backend.requests[-1].content) == {"fieldData": {"Name": "Ada"}}


@pytest.mark.asyncio
async def test_create_record_requires_field_data(context, backend):
    result = await context.service.create_record("SALES", "Customers", {})
    assert result.error == "Field data is required"
    assert backend.requests == []


@pytest.mark.asyncio
async def test_update_record_uses_patch(context, backend):
    backend.routes[("PATCH", "/layouts/Customers/records/7")] = {"response": {"modId": "1"}, "messages": []}

    result = await context.service.update_record("SALES", "Customers", "7", {"Name": "Grace"})

    assert result.data == {"modId": "1"}
    assert backend.requests[-1].method == "PATCH"


@pytest.mark.asyncio
async def test_delete_record_empty_response(context, backend):
    backend.routes[("DELETE", "/layouts/Customers/records/7")] = {"response": {}, "messages": [{"code": "0", "message": "OK"}]}

    result = await context.service.delete_record("SALES", "Customers", "7")

    assert result.success
    assert result.data == {"success": True}


@pytest.mark.asyncio
async def test_mutations_are_never_cached(context, backend):
    for _ in range(2):
        await context.service.update_record("SALES", "Customers", "7", {"Name": "Grace"})
        await context.service.delete_record("SALES", "Customers", "7")
        await context.service.run_script("SALES", "Customers", "Rebuild")
    assert backend.data_calls == 6
    assert len(context.result_cache) == 0


@pytest.mark.asyncio
async def test_run_script_with_parameter(context, backend):
    backend.routes[("GET", "/layouts/Invoices/script/Post%20Invoice")] = {"response": {"scriptError": "0", "scriptResult": "ok"}, "messages": []}

    result = await context.service.run_script("SALES", "Invoices", "Post Invoice", "INV-1")

    assert result.data == {"scriptError": "0", "scriptResult": "ok"}
    assert backend.requests[-1].url.params["script.param"] == "INV-1"


@pytest.mark.asyncio
async def test_run_script_reports_script_errors_as_data(context, backend):
    backend.routes[("GET", "/layouts/Invoices/script/Post")] = {"response": {"scriptError": "3"}, "messages": []}
    result = await context.service.run_script("SALES", "Invoices", "Post")
    assert result.success
    assert result.data == {"scriptError": "3"}


@pytest.mark.asyncio
async def test_list_scripts_and_product_info(context, backend):
    backend.routes[("GET", "/scripts")] = {"response": {"scripts": [{"name": "Rebuild", "isFolder": False}]}, "messages": []}
    backend.routes[("GET", "/productInfo")] = {"response": {"productInfo": {"version": "21.0.1"}}, "messages": []}

    scripts = await context.service.list_scripts("HR")
    info = await context.service.get_product_info("HR")

    assert scripts.data == {"scripts": [{"name": "Rebuild", "isFolder": False}]}
    assert info.data == {"productInfo": {"version": "21.0.1"}}


@pytest.mark.asyncio
async def test_backend_failure_becomes_failed_result(context, backend):
    backend.routes[("GET", "/layouts/Gone")] = lambda request: fm_error(500, "105", "Layout is missing")

    result = await context.service.get_layout_metadata("SALES", "Gone")

    assert not result.success
    assert result.error == "Request failed: Layout is missing"


@pytest.mark.asyncio
async def test_unexpected_errors_are_contained(context, monkeypatch):
    monkeypatch.setattr(context.executor, "execute", AsyncMock(side_effect=KeyError("boom")))

    result = await context.service.get_metadata("SALES")

    assert not result.success
    assert result.error == "Unexpected error: KeyError"


@pytest.mark.asyncio
async def test_failed_login_never_leaks_password(context, backend):
    backend.login = lambda request: fm_error(401, "212", f"bad password {SALES_PASSWORD}")
    for result in (await context.service.test_target("SALES"), await context.service.get_metadata("SALES")):
        assert not result.success
        assert SALES_PASSWORD not in result.error


@pytest.mark.asyncio
async def test_clear_cache_scopes(context, backend):
    await context.service.get_metadata("SALES")
    await context.service.get_metadata("HR")

    data = context.service.clear_cache("data")
    assert data.message == "data cache cleared"
    assert data.data == {"sessions": 0, "results": 2}
    assert context.sessions.session_state("SALES") is SessionState.ACTIVE

    sessions = context.service.clear_cache("session")
    assert sessions.data == {"sessions": 2, "results": 0}
    assert context.sessions.session_state("SALES") is SessionState.NO_SESSION


@pytest.mark.asyncio
async def test_clear_all_is_idempotent(context, backend):
    await context.service.get_metadata("SALES")

    first = context.service.clear_cache("all")
    second = context.service.clear_cache("all")

    assert first.success and second.success
    assert first.data == {"sessions": 1, "results": 1}
    assert second.data == {"sessions": 0, "results": 0}
    assert second.message == "all cache cleared"

    await context.service.get_metadata("SALES")
    assert backend.auth_calls == 2
    assert backend.data_calls == 2


@pytest.mark.asyncio
async def test_clear_cache_rejects_unknown_scope(context):
    result = context.service.clear_cache("everything")
    assert not result.success
    assert "Invalid cache type" in result.error


@pytest.mark.asyncio
async def test_malformed_host_is_a_structured_failure(malformed_context):
    connection = await malformed_context.service.test_target("BAD")
    metadata = await malformed_context.service.get_metadata("BAD")

    assert not connection.success
    assert connection.error.startswith("Connection failed to BAD: Authentication failed for BAD: InvalidURL")
    assert metadata.error.startswith("Authentication failed for BAD: InvalidURL")
    assert SALES_PASSWORD not in connection.error
