"""
Caching module.
Contains the response cache, cache key helpers and the session store.
"""

from kvjobs.cache.keys import generate_cache_key, hash_text
from kvjobs.cache.response_cache import ResponseCache
from kvjobs.cache.sessions import SessionStore

__all__ = [
    "ResponseCache",
    "SessionStore",
    "generate_cache_key",
    "hash_text",
]
