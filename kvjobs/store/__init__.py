"""
Key-value store module.
Contains the store interface and its in-memory and Redis implementations.
"""

from kvjobs.store.base import TTL_MISSING, TTL_NO_EXPIRY, KVStore
from kvjobs.store.connection import create_store
from kvjobs.store.memory import MemoryStore
from kvjobs.store.redis_store import RedisStore

__all__ = [
    "KVStore",
    "MemoryStore",
    "RedisStore",
    "create_store",
    "TTL_MISSING",
    "TTL_NO_EXPIRY",
]
