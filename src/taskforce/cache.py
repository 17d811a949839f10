"""
In-process TTL cache.

Process-lifetime key/value map with per-entry expiry, used by the GitHub
storage to avoid re-listing unchanged partitions on every dashboard
refresh. Not synchronized and never authoritative: callers invalidate
after each committed write.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 8.0


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Key/value map whose entries expire after a TTL.

    Example:
        cache = TTLCache(default_ttl=8.0)
        listing = cache.get("gh:col:todo")
        if listing is None:
            listing = cache.set("gh:col:todo", await fetch_listing())
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            default_ttl: Seconds an entry lives when set() gets no ttl
            clock: Monotonic time source, injectable for tests
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._store: dict[str, _Entry] = {}

    def get(self, key: str) -> Any | None:
        """Return the live value for key, evicting it if expired."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._store[key]
            logger.debug(f"cache expired: {key}")
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> Any:
        """Store value under key and return it unchanged.

        Expired entries are swept first, so keys that are never read again
        do not accumulate.
        """
        now = self._clock()
        self._evict_expired(now)
        lifetime = self.default_ttl if ttl is None else ttl
        self._store[key] = _Entry(value=value, expires_at=now + lifetime)
        return value

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, entry in self._store.items() if now >= entry.expires_at]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug(f"cache swept {len(expired)} expired entries")

    def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> None:
        """Remove every key starting with prefix."""
        for key in [k for k in self._store if k.startswith(prefix)]:
            del self._store[key]

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
