"""Cache implementations."""

from storefront.infrastructure.cache.ttl_cache import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "TTLCache",
]
