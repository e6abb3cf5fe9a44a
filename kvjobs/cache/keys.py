"""
Cache key helpers.

Keys follow ``<domain>:<operation>:<hash>``. Large inputs are hashed from
their first ``max_chars`` characters only, which bounds key size at the
cost of near-duplicate inputs sharing a key.
"""

import hashlib
from typing import Any

DEFAULT_HASH_CHARS = 100


def generate_cache_key(prefix: str, *parts: Any) -> str:
    """
    Join a namespace prefix and request parts into a cache key.

    Example:
        generate_cache_key("resume:optimize", hash_text(resume), hash_text(job))
    """
    return ":".join([prefix, *(str(part) for part in parts)])


def hash_text(text: str, max_chars: int = DEFAULT_HASH_CHARS) -> str:
    """
    Stable short hash of the start of ``text``.

    Args:
        text: Input to hash.
        max_chars: How many leading characters take part in the hash.

    Returns:
        16 hex characters.
    """
    return hashlib.sha256(text[:max_chars].encode("utf-8")).hexdigest()[:16]
