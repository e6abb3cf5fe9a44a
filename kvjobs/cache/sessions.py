"""
TTL'd session storage over the key-value store.

Unlike the response cache, session state matters to callers, so store
failures propagate.
"""

import json
from typing import Any

from pydantic_core import to_json

from kvjobs.constants import SESSION_KEY_PREFIX, CacheTTL
from kvjobs.store.base import KVStore


class SessionStore:
    """Session data keyed by session ID, expiring after a TTL."""

    def __init__(self, store: KVStore):
        self._store = store

    @staticmethod
    def session_key(session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}:{session_id}"

    async def set(self, session_id: str, data: Any, ttl_seconds: int = CacheTTL.MEDIUM) -> None:
        """Store session data, replacing any previous value and TTL."""
        await self._store.set(
            self.session_key(session_id),
            to_json(data).decode("utf-8"),
            ttl_seconds=int(ttl_seconds),
        )

    async def get(self, session_id: str) -> Any | None:
        raw = await self._store.get(self.session_key(session_id))
        if raw is None:
            return None
        return json.loads(raw)

    async def delete(self, session_id: str) -> None:
        await self._store.delete(self.session_key(session_id))

    async def extend(self, session_id: str, ttl_seconds: int = CacheTTL.MEDIUM) -> bool:
        """
        Restart a session's TTL.

        Returns:
            False if the session does not exist (or already expired).
        """
        return await self._store.expire(self.session_key(session_id), int(ttl_seconds))
