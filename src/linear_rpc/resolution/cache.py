"""Time-bounded cache for resolved Linear identifiers.

Entries are keyed by ``(kind, scope, name)``. ``scope`` is the team ID for
team-scoped kinds (state, label, team-filtered project) and ``None`` otherwise,
so the same name in two teams never collides.

Staleness is global: one ``last_refresh`` timestamp covers every entry of
every kind. A stale cache is not evicted; reads simply miss until a fresh
result overwrites the entry and resets the timestamp.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0

CACHE_KINDS = ("team", "project", "user", "state", "label")
TEAM_SCOPED_KINDS = ("state", "label")

CacheKey = Tuple[str, Optional[str], str]


class ResolverCache:
    """In-process name -> ID cache shared by one resolver for a service lifetime."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, str] = {}
        self.last_refresh = 0.0

    @staticmethod
    def _key(kind: str, name: str, scope: Optional[str]) -> CacheKey:
        if kind not in CACHE_KINDS:
            raise ValueError(f"Unknown cache kind: {kind}")
        if kind in TEAM_SCOPED_KINDS and not scope:
            raise ValueError(f"Cache kind '{kind}' requires a team scope")
        return (kind, scope or None, name)

    def is_stale(self) -> bool:
        return self._clock() - self.last_refresh > self.ttl_seconds

    def get(self, kind: str, name: str, scope: Optional[str] = None) -> Optional[str]:
        """Return the cached ID, or None when absent or the cache is stale."""
        key = self._key(kind, name, scope)
        if self.is_stale():
            return None
        return self._entries.get(key)

    def set(self, kind: str, name: str, value: str, scope: Optional[str] = None) -> None:
        self._entries[self._key(kind, name, scope)] = value
        self.last_refresh = self._clock()

    def clear(self) -> None:
        """Drop every entry and mark the cache stale."""
        self._entries.clear()
        self.last_refresh = 0.0

    def size(self, kind: Optional[str] = None) -> int:
        if kind is None:
            return len(self._entries)
        return sum(1 for key in self._entries if key[0] == kind)

    def snapshot(self) -> Dict[CacheKey, str]:
        """Copy of the raw entries, regardless of staleness."""
        return dict(self._entries)
