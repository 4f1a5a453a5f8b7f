"""
Client-side caching
"""
from student_support.cache.smart_cache import (
    CACHE_CONFIGS,
    CacheConfig,
    CacheEntry,
    SmartCache,
    invalidate_ticket_cache,
    invalidate_user_actions,
    ticket_detail_key,
    tickets_list_key,
)

__all__ = [
    "CACHE_CONFIGS",
    "CacheConfig",
    "CacheEntry",
    "SmartCache",
    "invalidate_ticket_cache",
    "invalidate_user_actions",
    "ticket_detail_key",
    "tickets_list_key",
]
