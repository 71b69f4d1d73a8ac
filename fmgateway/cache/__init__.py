# -*- coding: utf-8 -*-
"""Location: ./fmgateway/cache/__init__.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0

Cache Package.
Provides the caching components of the gateway:
- TTL cache used for both Data API session tokens and read results
- Deterministic result cache key construction
"""

# First-Party
from fmgateway.cache.cache_keys import make_cache_key, normalize_params
from fmgateway.cache.ttl_cache import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "TTLCache",
    "make_cache_key",
    "normalize_params",
]
