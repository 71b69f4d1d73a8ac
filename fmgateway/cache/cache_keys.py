# -*- coding: utf-8 -*-
"""Location: ./fmgateway/cache/cache_keys.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Result cache key construction.

A key is the stable serialization of ``(operation kind, target id, parameters)``.
Dictionary keys are sorted at every depth and top-level ``None`` parameters are
dropped, so two logically identical calls always collide while calls that
differ in any parameter never do. Lists keep their order: the order of find
requests and sort fields changes the FileMaker result.
"""

# Standard
from typing import Any, Mapping, Optional

# Third-Party
import orjson


def normalize_params(params: Optional[Mapping[str, Any]]) -> dict:
    """Drop unset parameters so ``limit=None`` and an absent limit share a key.

    Args:
        params: Operation parameters.

    Returns:
        A new dict without ``None`` values.

    Examples:
        >>> normalize_params({"limit": None, "layout": "Customers"})
        {'layout': 'Customers'}
        >>> normalize_params(None)
        {}
    """
    return {name: value for name, value in (params or {}).items() if value is not None}


def make_cache_key(kind: str, target_id: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build the result cache key for an operation.

    Args:
        kind: Logical operation kind (``metadata``, ``layout``, ``find`` ...).
        target_id: Configured target identifier.
        params: Parameters that select the result.

    Returns:
        str: Deterministic key.

    Examples:
        >>> a = make_cache_key("find", "SALES", {"layout": "Customers", "body": {"query": [{"City": "Paris"}], "limit": 10}})
        >>> b = make_cache_key("find", "SALES", {"body": {"limit": 10, "query": [{"City": "Paris"}]}, "layout": "Customers"})
        >>> a == b
        True
        >>> a == make_cache_key("find", "SALES", {"layout": "Customers", "body": {"query": [{"City": "Lyon"}], "limit": 10}})
        False
        >>> make_cache_key("metadata", "SALES")
        '["metadata","SALES",{}]'
        >>> make_cache_key("a:b", "c") == make_cache_key("a", "b:c")
        False
    """
    payload = [kind, target_id, normalize_params(params)]
    return orjson.dumps(payload, default=str, option=orjson.OPT_SORT_KEYS).decode()
