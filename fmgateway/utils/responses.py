# -*- coding: utf-8 -*-
"""Location: ./fmgateway/utils/responses.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Helpers for reading FileMaker Data API responses.

The Data API wraps every body as ``{"response": {...}, "messages": [{"code", "message"}]}``.
"""

# Standard
from typing import Any, Optional, Union

# Third-Party
import httpx
import orjson


def parse_body(response: httpx.Response) -> Any:
    """Decode a JSON body; an empty body decodes to an empty dict.

    Args:
        response: HTTP response.

    Returns:
        Any: Parsed JSON.

    Raises:
        orjson.JSONDecodeError: If the body is not JSON.

    Examples:
        >>> parse_body(httpx.Response(200, content=b'{"response": {"token": "t"}}'))
        {'response': {'token': 't'}}
        >>> parse_body(httpx.Response(204))
        {}
    """
    if not response.content:
        return {}
    return orjson.loads(response.content)


def backend_message(response: httpx.Response) -> Optional[str]:
    """Return the first FileMaker message of an error body, if any.

    Args:
        response: HTTP response.

    Returns:
        Optional[str]: ``messages[0].message`` or None when absent or not JSON.

    Examples:
        >>> backend_message(httpx.Response(500, json={"messages": [{"code": "105", "message": "Layout is missing"}]}))
        'Layout is missing'
        >>> backend_message(httpx.Response(502, content=b"<html>Bad gateway</html>")) is None
        True
    """
    try:
        body = parse_body(response)
    except orjson.JSONDecodeError:
        return None
    if not isinstance(body, dict):
        return None
    messages = body.get("messages")
    if isinstance(messages, list) and messages and isinstance(messages[0], dict):
        message = messages[0].get("message")
        if message:
            return str(message)
    return None


def describe_failure(response: httpx.Response) -> str:
    """Human readable reason for a non-success response.

    Args:
        response: HTTP response.

    Returns:
        str: The backend message when available, otherwise ``HTTP <status>``.

    Examples:
        >>> describe_failure(httpx.Response(404))
        'HTTP 404'
    """
    return backend_message(response) or f"HTTP {response.status_code}"


def describe_transport_error(exc: Union[httpx.HTTPError, httpx.InvalidURL]) -> str:
    """Human readable reason for a transport-level failure.

    Args:
        exc: Exception raised by httpx, including URL parsing failures.

    Returns:
        str: Short description; timeouts are named as such.

    Examples:
        >>> describe_transport_error(httpx.ReadTimeout("timed out"))
        'Request timed out (ReadTimeout)'
        >>> describe_transport_error(httpx.ConnectError("Name or service not known"))
        'ConnectError: Name or service not known'
        >>> describe_transport_error(httpx.InvalidURL("Invalid port: 'x'"))
        "InvalidURL: Invalid port: 'x'"
    """
    if isinstance(exc, httpx.TimeoutException):
        return f"Request timed out ({type(exc).__name__})"
    detail = str(exc)
    return f"{type(exc).__name__}: {detail}" if detail else type(exc).__name__
