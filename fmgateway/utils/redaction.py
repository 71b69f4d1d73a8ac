# -*- coding: utf-8 -*-
"""Location: ./fmgateway/utils/redaction.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Secret redaction helpers.

Passwords, API keys and Data API tokens must never reach a log line or an
error message returned to the agent. These helpers mask known secret values
and sensitive query parameters before a string leaves the gateway.
"""

# Standard
import re
from typing import FrozenSet, Iterable, Optional
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

REDACTED = "REDACTED"

STATIC_SENSITIVE_PARAMS: FrozenSet[str] = frozenset(
    {
        "api_key",
        "apikey",
        "api-key",
        "key",
        "token",
        "access_token",
        "auth",
        "secret",
        "password",
        "pwd",
        "credential",
        "credentials",
    }
)

_BEARER_PATTERN = re.compile(r"\b(Bearer|Basic|FMID)\s+[A-Za-z0-9._~+/=-]{8,}")


def sanitize_url_for_logging(url: str) -> str:
    """Redact sensitive query parameters from a URL for safe logging.

    Args:
        url: The URL to sanitize.

    Returns:
        URL with sensitive parameter values replaced with ``REDACTED``.

    Examples:
        >>> sanitize_url_for_logging("https://fm.example.com/fmi/data/v1/databases/Sales/layouts?token=abc")
        'https://fm.example.com/fmi/data/v1/databases/Sales/layouts?token=REDACTED'
        >>> sanitize_url_for_logging("https://fm.example.com/fmi/data/v1/databases/Sales/layouts/Customers/records?_limit=5")
        'https://fm.example.com/fmi/data/v1/databases/Sales/layouts/Customers/records?_limit=5'
        >>> sanitize_url_for_logging("https://fm.example.com/x")
        'https://fm.example.com/x'
    """
    parsed = urlparse(url)
    if not parsed.query:
        return url

    params = parse_qs(parsed.query, keep_blank_values=True)
    changed = False
    flat = {}
    for name, values in params.items():
        if name.lower() in STATIC_SENSITIVE_PARAMS:
            flat[name] = REDACTED
            changed = True
        else:
            flat[name] = values[0] if values else ""

    if not changed:
        return url
    return urlunparse(parsed._replace(query=urlencode(flat)))


def redact_secrets(message: str, secrets: Optional[Iterable[Optional[str]]] = None) -> str:
    """Mask secret values and authorization headers inside free text.

    Args:
        message: Text that may embed secrets, e.g. an exception message.
        secrets: Known secret values (passwords, api keys, tokens) to mask.

    Returns:
        The message with every known secret and credential header masked.

    Examples:
        >>> redact_secrets("login failed for admin/hunter2", ["hunter2"])
        'login failed for admin/REDACTED'
        >>> redact_secrets("sent Authorization: Bearer 0a1b2c3d4e")
        'sent Authorization: Bearer REDACTED'
        >>> redact_secrets("nothing to hide", [None, ""])
        'nothing to hide'
    """
    for secret in secrets or ():
        if secret:
            message = message.replace(secret, REDACTED)
    return _BEARER_PATTERN.sub(lambda m: f"{m.group(1)} {REDACTED}", message)
