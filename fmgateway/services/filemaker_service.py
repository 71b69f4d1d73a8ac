# -*- coding: utf-8 -*-
"""Location: ./fmgateway/services/filemaker_service.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

FileMaker Service.

One method per MCP tool. Each method maps the tool arguments onto one Data
API call through the request executor and shapes the answer as a
``ToolResult``. Failures are returned as ``success=False`` results carrying a
descriptive message; nothing raised below this layer crosses the MCP boundary.

Cacheable reads: layouts, layout metadata, record listings, finds, single
records and scripts. Record creation, update, deletion and script execution
always reach FileMaker.
"""

# Standard
import logging
from typing import Any, Awaitable, Dict, List, Mapping, Optional
from urllib.parse import quote

# Third-Party
import orjson

# First-Party
from fmgateway.schemas import CacheScope, TargetProfile, ToolResult
from fmgateway.services.errors import GatewayError
from fmgateway.services.request_executor import RequestExecutor
from fmgateway.services.session_manager import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
DEFAULT_OFFSET = 1


def _segment(value: Any) -> str:
    """Percent-encode one path segment, slashes included.

    Args:
        value: Layout, script or record identifier.

    Returns:
        str: Encoded segment.

    Examples:
        >>> _segment("Invoices / Open")
        'Invoices%20%2F%20Open'
        >>> _segment(42)
        '42'
    """
    return quote(str(value), safe="")


def _response_of(payload: Any, empty_default: Optional[Dict[str, Any]] = None) -> Any:
    """Return the ``response`` member of a Data API body.

    Args:
        payload: Parsed body.
        empty_default: Value used when ``response`` is missing or empty.

    Returns:
        Any: The response member, the default, or the payload itself when it is not a dict.

    Examples:
        >>> _response_of({"response": {"data": []}, "messages": []})
        {'data': []}
        >>> _response_of({"response": {}}, {"success": True})
        {'success': True}
    """
    if not isinstance(payload, dict):
        return payload
    response = payload.get("response")
    if not response and empty_default is not None:
        return empty_default
    return response


def _missing(**fields: Any) -> Optional[str]:
    """Describe the first required argument that is empty.

    Args:
        **fields: Argument label to value.

    Returns:
        Optional[str]: ``"<label> is required"`` or None.

    Examples:
        >>> _missing(Layout="Customers", **{"Record ID": ""})
        'Record ID is required'
        >>> _missing(Layout="Customers") is None
        True
    """
    for label, value in fields.items():
        if value is None or value == "" or value == {}:
            return f"{label} is required"
    return None


class FileMakerService:
    """Operation handlers behind the MCP tools."""

    def __init__(self, targets: Mapping[str, TargetProfile], sessions: SessionManager, executor: RequestExecutor) -> None:
        """Initialize the service.

        Args:
            targets: Discovered targets keyed by id.
            sessions: Session manager.
            executor: Request executor.
        """
        self._targets = targets
        self._sessions = sessions
        self._executor = executor

    async def _guard(self, operation: str, call: Awaitable[ToolResult]) -> ToolResult:
        """Await a handler and turn failures into structured results.

        Args:
            operation: Operation name for logging.
            call: Handler coroutine.

        Returns:
            ToolResult: Handler result, or a failed result.
        """
        try:
            return await call
        except GatewayError as exc:
            return ToolResult.fail(str(exc))
        except Exception as exc:
            logger.exception("Unexpected error in %s", operation)
            return ToolResult.fail(f"Unexpected error: {type(exc).__name__}")

    # ------------------------------------------------------------------
    # Targets
    # ------------------------------------------------------------------

    def list_targets(self) -> ToolResult:
        """List configured databases. No authentication, no cache.

        Returns:
            ToolResult: ``{"databases": [...], "count": n}``.
        """
        databases = list(self._targets)
        return ToolResult.ok({"databases": databases, "count": len(databases)})

    async def test_target(self, target_id: str) -> ToolResult:
        """Check that a session can be obtained for a database.

        Args:
            target_id: Target identifier.

        Returns:
            ToolResult: Success with a confirmation, or the failure reason.
        """
        try:
            await self._sessions.get_token(target_id)
        except GatewayError as exc:
            return ToolResult.fail(f"Connection failed to {target_id}: {exc}")
        except Exception as exc:
            logger.exception("Unexpected error in test_target")
            return ToolResult.fail(f"Connection failed to {target_id}: Unexpected error: {type(exc).__name__}")
        return ToolResult.ok(message=f"Connection successful to {target_id}")

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def get_metadata(self, target_id: str) -> ToolResult:
        """Layouts of a database (cached).

        Args:
            target_id: Target identifier.

        Returns:
            ToolResult: FileMaker layout list.
        """
        return await self._guard("get_metadata", self._read(target_id, "metadata", "/layouts"))

    async def get_layout_metadata(self, target_id: str, layout: str) -> ToolResult:
        """Field and portal definitions of a layout (cached).

        Args:
            target_id: Target identifier.
            layout: Layout name.

        Returns:
            ToolResult: Layout metadata.
        """
        if error := _missing(Layout=layout):
            return ToolResult.fail(error)
        return await self._guard("get_layout_metadata", self._read(target_id, "layout", f"/layouts/{_segment(layout)}"))

    async def list_scripts(self, target_id: str) -> ToolResult:
        """Scripts available in a database (cached).

        Args:
            target_id: Target identifier.

        Returns:
            ToolResult: Script list.
        """
        return await self._guard("list_scripts", self._read(target_id, "scripts", "/scripts"))

    async def get_product_info(self, target_id: str) -> ToolResult:
        """FileMaker Server product information (cached, no session needed).

        Args:
            target_id: Target whose server is asked.

        Returns:
            ToolResult: ``productInfo`` with name, version and date/time formats.
        """
        return await self._guard("get_product_info", self._product_info(target_id))

    async def _product_info(self, target_id: str) -> ToolResult:
        """Fetch server product information and unwrap its response.

        Args:
            target_id: Target whose server is asked.

        Returns:
            ToolResult: The ``response`` member of ``/productInfo``.
        """
        payload = await self._executor.fetch_server_info(target_id, "product_info", "/productInfo")
        return ToolResult.ok(_response_of(payload))

    async def _read(self, target_id: str, kind: str, path: str, body: Optional[Dict[str, Any]] = None, params: Optional[Dict[str, Any]] = None, method: str = "GET") -> ToolResult:
        """Run a cacheable read and unwrap its response.

        Args:
            target_id: Target identifier.
            kind: Operation kind.
            path: Encoded path below the database root.
            body: JSON body for POST reads (finds).
            params: Query parameters.
            method: HTTP method.

        Returns:
            ToolResult: The ``response`` member.
        """
        payload = await self._executor.execute(target_id, kind, method, path, body=body, params=params, cacheable=True)
        return ToolResult.ok(_response_of(payload))

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def query_records(
        self,
        target_id: str,
        layout: str,
        query: Optional[List[Dict[str, Any]]] = None,
        sort: Optional[List[Dict[str, Any]]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ToolResult:
        """List or find records (cached).

        Structured criteria select the ``_find`` endpoint with the criteria in
        the body; otherwise the plain record listing is used.

        Args:
            target_id: Target identifier.
            layout: Layout name.
            query: Find requests, e.g. ``[{"City": "Paris"}]``.
            sort: Sort specs, e.g. ``[{"fieldName": "Name", "sortOrder": "ascend"}]``.
            limit: Maximum number of records.
            offset: First record to return (1-based).

        Returns:
            ToolResult: FileMaker ``response`` with ``data`` and ``dataInfo``.
        """
        if error := _missing(Layout=layout):
            return ToolResult.fail(error)

        base = f"/layouts/{_segment(layout)}"
        if query:
            body: Dict[str, Any] = {"query": query}
            if sort:
                body["sort"] = sort
            if limit:
                body["limit"] = limit
            if offset:
                body["offset"] = offset
            return await self._guard("query_records", self._read(target_id, "find", f"{base}/_find", body=body, method="POST"))

        params: Dict[str, Any] = {"_limit": limit or DEFAULT_LIMIT, "_offset": offset or DEFAULT_OFFSET}
        if sort:
            params["_sort"] = orjson.dumps(sort).decode()
        return await self._guard("query_records", self._read(target_id, "records", f"{base}/records", params=params))

    async def get_record(self, target_id: str, layout: str, record_id: str) -> ToolResult:
        """Fetch one record by its FileMaker record id (cached).

        Args:
            target_id: Target identifier.
            layout: Layout name.
            record_id: FileMaker internal record id.

        Returns:
            ToolResult: FileMaker ``response`` holding the record.
        """
        if error := _missing(Layout=layout, **{"Record ID": record_id}):
            return ToolResult.fail(error)
        return await self._guard("get_record", self._read(target_id, "record", f"/layouts/{_segment(layout)}/records/{_segment(record_id)}"))

    async def create_record(self, target_id: str, layout: str, field_data: Dict[str, Any]) -> ToolResult:
        """Create a record.

        Args:
            target_id: Target identifier.
            layout: Layout name.
            field_data: Field name to value.

        Returns:
            ToolResult: FileMaker ``response`` with ``recordId`` and ``modId``.
        """
        if error := _missing(Layout=layout, **{"Field data": field_data}):
            return ToolResult.fail(error)
        return await self._guard(
            "create_record",
            self._write(target_id, "create_record", "POST", f"/layouts/{_segment(layout)}/records", body={"fieldData": field_data}),
        )

    async def update_record(self, target_id: str, layout: str, record_id: str, field_data: Dict[str, Any]) -> ToolResult:
        """Update fields of a record.

        Args:
            target_id: Target identifier.
            layout: Layout name.
            record_id: FileMaker internal record id.
            field_data: Field name to new value.

        Returns:
            ToolResult: FileMaker ``response`` with the new ``modId``.
        """
        if error := _missing(Layout=layout, **{"Record ID": record_id, "Field data": field_data}):
            return ToolResult.fail(error)
        return await self._guard(
            "update_record",
            self._write(target_id, "update_record", "PATCH", f"/layouts/{_segment(layout)}/records/{_segment(record_id)}", body={"fieldData": field_data}),
        )

    async def delete_record(self, target_id: str, layout: str, record_id: str) -> ToolResult:
        """Delete a record.

        Args:
            target_id: Target identifier.
            layout: Layout name.
            record_id: FileMaker internal record id.

        Returns:
            ToolResult: ``{"success": true}`` when FileMaker returns an empty response.
        """
        if error := _missing(Layout=layout, **{"Record ID": record_id}):
            return ToolResult.fail(error)
        return await self._guard(
            "delete_record",
            self._write(target_id, "delete_record", "DELETE", f"/layouts/{_segment(layout)}/records/{_segment(record_id)}", empty_default={"success": True}),
        )

    # ------------------------------------------------------------------
    # Scripts
    # ------------------------------------------------------------------

    async def run_script(self, target_id: str, layout: str, script: str, parameter: Optional[str] = None) -> ToolResult:
        """Run a FileMaker script in the context of a layout. Never cached.

        The script result (``scriptError``, ``scriptResult``) is returned as is;
        a non-zero ``scriptError`` is not turned into a failure.

        Args:
            target_id: Target identifier.
            layout: Layout providing the script context.
            script: Script name.
            parameter: Optional script parameter.

        Returns:
            ToolResult: FileMaker ``response`` with the script result.
        """
        if error := _missing(Layout=layout, **{"Script name": script}):
            return ToolResult.fail(error)
        params = {"script.param": parameter} if parameter else None
        return await self._guard(
            "run_script",
            self._write(target_id, "run_script", "GET", f"/layouts/{_segment(layout)}/script/{_segment(script)}", params=params, empty_default={"success": True}),
        )

    async def _write(
        self,
        target_id: str,
        kind: str,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        empty_default: Optional[Dict[str, Any]] = None,
    ) -> ToolResult:
        """Run a non-cacheable call and unwrap its response.

        Args:
            target_id: Target identifier.
            kind: Operation kind.
            method: HTTP method.
            path: Encoded path below the database root.
            body: JSON body.
            params: Query parameters.
            empty_default: Value returned when FileMaker sends an empty response.

        Returns:
            ToolResult: The ``response`` member.
        """
        payload = await self._executor.execute(target_id, kind, method, path, body=body, params=params, cacheable=False)
        logger.info("%s on %s completed", kind, target_id)
        return ToolResult.ok(_response_of(payload, empty_default))

    # ------------------------------------------------------------------
    # Caches
    # ------------------------------------------------------------------

    def clear_cache(self, scope: str) -> ToolResult:
        """Clear the session cache, the result cache, or both.

        Clearing an empty cache is a no-op.

        Args:
            scope: ``session``, ``data`` or ``all``.

        Returns:
            ToolResult: Confirmation with the number of entries removed.
        """
        try:
            selected = CacheScope(scope)
        except ValueError:
            return ToolResult.fail(f"Invalid cache type: {scope!r} (expected session, data or all)")

        removed = {"sessions": 0, "results": 0}
        if selected in (CacheScope.SESSION, CacheScope.ALL):
            removed["sessions"] = self._sessions.clear()
        if selected in (CacheScope.DATA, CacheScope.ALL):
            removed["results"] = self._executor.clear_results()
        return ToolResult.ok(removed, message=f"{selected.value} cache cleared")
