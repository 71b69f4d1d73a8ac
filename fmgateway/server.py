# -*- coding: utf-8 -*-
"""Location: ./fmgateway/server.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

FileMaker MCP Server.

FastMCP server exposing one tool per Data API operation. Tool functions are
thin: they resolve the process ``GatewayContext`` and delegate to its
``FileMakerService``, which returns a ``ToolResult`` for successes and
failures alike.

The context is built in ``main()`` (or injected by tests through
``set_context``) and started and stopped by the server lifespan.

Usage:
    mcp-filemaker-gateway                      # stdio
    mcp-filemaker-gateway --transport http --port 9010
"""

# Standard
import argparse
from contextlib import asynccontextmanager
import logging
import sys
from typing import Any, AsyncIterator, Dict, List, Optional

# Third-Party
from fastmcp import FastMCP

# First-Party
from fmgateway import __version__
from fmgateway.config import load_settings
from fmgateway.schemas import ToolResult
from fmgateway.services.errors import ConfigurationError
from fmgateway.services.gateway_context import GatewayContext

logger = logging.getLogger("fmgateway")

_context: Optional[GatewayContext] = None


def set_context(context: Optional[GatewayContext]) -> None:
    """Install the gateway context served by the tools.

    Args:
        context: Context to serve, or None to remove it.
    """
    global _context
    _context = context


def get_context() -> GatewayContext:
    """Return the installed gateway context.

    Returns:
        GatewayContext: The context.

    Raises:
        RuntimeError: If no context was installed.
    """
    if _context is None:
        raise RuntimeError("Gateway context not initialized. Call set_context() first.")
    return _context


@asynccontextmanager
async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
    """Start the gateway context with the server and stop it on exit.

    Args:
        _server: The FastMCP server.

    Yields:
        None
    """
    context = get_context()
    await context.initialize()
    try:
        yield
    finally:
        await context.shutdown()


mcp = FastMCP(name="filemaker-gateway", version=__version__, lifespan=lifespan)


@mcp.tool(description="List the FileMaker databases configured on this gateway")
async def fm_list_databases() -> ToolResult:
    return get_context().service.list_targets()


@mcp.tool(description="Test the connection to a FileMaker database by opening a Data API session")
async def fm_test_connection(database: str) -> ToolResult:
    return await get_context().service.test_target(database)


@mcp.tool(description="List the layouts of a FileMaker database")
async def fm_get_metadata(database: str) -> ToolResult:
    return await get_context().service.get_metadata(database)


@mcp.tool(description="Get field and portal definitions of a layout")
async def fm_get_layout_metadata(database: str, layout: str) -> ToolResult:
    return await get_context().service.get_layout_metadata(database, layout)


@mcp.tool(description="Query records from a layout; pass find requests in 'query' to filter, e.g. [{\"City\": \"Paris\"}]")
async def fm_query_records(
    database: str,
    layout: str,
    query: Optional[List[Dict[str, Any]]] = None,
    sort: Optional[List[Dict[str, Any]]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> ToolResult:
    return await get_context().service.query_records(database, layout, query=query, sort=sort, limit=limit, offset=offset)


@mcp.tool(description="Get one record by its FileMaker record id")
async def fm_get_record(database: str, layout: str, record_id: str) -> ToolResult:
    return await get_context().service.get_record(database, layout, record_id)


@mcp.tool(description="Create a record in a layout")
async def fm_create_record(database: str, layout: str, field_data: Dict[str, Any]) -> ToolResult:
    return await get_context().service.create_record(database, layout, field_data)


@mcp.tool(description="Update fields of an existing record")
async def fm_update_record(database: str, layout: str, record_id: str, field_data: Dict[str, Any]) -> ToolResult:
    return await get_context().service.update_record(database, layout, record_id, field_data)


@mcp.tool(description="Delete a record")
async def fm_delete_record(database: str, layout: str, record_id: str) -> ToolResult:
    return await get_context().service.delete_record(database, layout, record_id)


@mcp.tool(description="Run a FileMaker script in the context of a layout")
async def fm_run_script(database: str, layout: str, script: str, parameter: Optional[str] = None) -> ToolResult:
    return await get_context().service.run_script(database, layout, script, parameter)


@mcp.tool(description="List the scripts of a FileMaker database")
async def fm_get_scripts(database: str) -> ToolResult:
    return await get_context().service.list_scripts(database)


@mcp.tool(description="Get FileMaker Server product information")
async def fm_get_product_info(database: str) -> ToolResult:
    return await get_context().service.get_product_info(database)


@mcp.tool(description="Clear cached sessions ('session'), cached results ('data') or both ('all')")
async def fm_clear_cache(cache_type: str = "all") -> ToolResult:
    return get_context().service.clear_cache(cache_type)


def configure_logging(level: str) -> None:
    """Send log records to stderr; stdout carries the stdio protocol.

    Args:
        level: Logging level name.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the FastMCP server.

    Args:
        argv: Command line arguments; ``sys.argv`` when omitted.
    """
    parser = argparse.ArgumentParser(description="FileMaker Data API MCP Server")
    parser.add_argument("--transport", choices=["stdio", "http"], default=None, help="Transport mode (stdio or http)")
    parser.add_argument("--host", default=None, help="HTTP host")
    parser.add_argument("--port", type=int, default=None, help="HTTP port")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        set_context(GatewayContext.from_environment(settings))
    except ConfigurationError as exc:
        configure_logging("INFO")
        logger.error("%s", exc)
        sys.exit(1)

    transport = args.transport or settings.mcp_transport
    if transport == "http":
        host = args.host or settings.mcp_host
        port = args.port or settings.mcp_port
        logger.info("Starting FileMaker MCP Server on HTTP at %s:%d", host, port)
        mcp.run(transport="http", host=host, port=port)
    else:
        logger.info("Starting FileMaker MCP Server on stdio")
        mcp.run()


if __name__ == "__main__":
    main()
