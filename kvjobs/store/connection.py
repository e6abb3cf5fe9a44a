"""
Store construction.

The store is built once at process start and handed to the queue, cache,
rate limiter and session store; nothing in the library holds a module-level
client.
"""

import logging

from kvjobs.config import Settings, get_settings
from kvjobs.store.base import KVStore
from kvjobs.store.memory import MemoryStore
from kvjobs.store.redis_store import RedisStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings | None = None) -> KVStore:
    """
    Create the key-value store described by the settings.

    Args:
        settings: Settings to read ``redis_url`` from. Defaults to the
            process settings.

    Returns:
        KVStore: A ``RedisStore`` when ``redis_url`` is set, otherwise an
        in-memory store.
    """
    settings = settings or get_settings()

    if settings.redis_url:
        logger.info("Using Redis key-value store")
        return RedisStore.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout_seconds,
        )

    logger.warning("REDIS_URL not set, using in-memory store (single process only)")
    return MemoryStore()
