"""Time-bounded, per-key cache of recipe documents."""

import copy
import logging
import time
from collections.abc import Callable
from typing import Any

from cachetools import Cache

from recipebox.models import CacheEntry, CacheEntryStatus, CacheStatus

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60


class RecipeCache:
    """Recipe documents keyed by recipe key, each stamped with its write time.

    Reads treat entries older than ``ttl`` as misses but never remove them;
    stale entries disappear only through ``sweep_expired`` or ``invalidate``.
    The store is bounded by ``maxsize``; past it the oldest insertion is
    dropped.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.timer = timer
        self._entries: Cache[str, CacheEntry] = Cache(maxsize=maxsize)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        return list(self._entries)

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self.timer() - entry.timestamp <= self.ttl

    def has_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self.is_fresh(entry)

    def get(self, key: str, bypass_if_stale: bool = True) -> CacheEntry | None:
        """Return a copy of the entry for ``key``, or None on a miss.

        With ``bypass_if_stale`` (the default) an expired entry counts as a
        miss; pass False to read it anyway.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if bypass_if_stale and not self.is_fresh(entry):
            logger.debug("Stale cache entry for %s", key)
            return None
        return entry.model_copy(deep=True)

    def put(self, key: str, data: dict[str, Any]) -> CacheEntry:
        entry = CacheEntry(key=key, data=copy.deepcopy(data), timestamp=self.timer())
        self._entries[key] = entry
        logger.debug("Cached %s", key)
        return entry

    def invalidate(self, key: str | None = None) -> list[str]:
        """Drop one entry, or every entry when no key is given.

        Returns the keys that were removed.
        """
        if key is None:
            removed = list(self._entries)
            self._entries.clear()
            logger.info("Cache cleared (%d entries removed)", len(removed))
            return removed
        if self._entries.pop(key, None) is None:
            return []
        logger.debug("Invalidated %s", key)
        return [key]

    def sweep_expired(self) -> list[str]:
        expired = [
            key for key, entry in self._entries.items() if not self.is_fresh(entry)
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("Swept %d expired cache entries", len(expired))
        return expired

    def status(self) -> CacheStatus:
        now = self.timer()
        entries = []
        for key, entry in self._entries.items():
            age = now - entry.timestamp
            entries.append(
                CacheEntryStatus(
                    key=key,
                    age_seconds=age,
                    remaining_seconds=max(0.0, self.ttl - age),
                    expired=age > self.ttl,
                )
            )
        entries.sort(key=lambda e: e.age_seconds)
        expired = sum(1 for e in entries if e.expired)
        return CacheStatus(
            total_entries=len(entries),
            valid_entries=len(entries) - expired,
            expired_entries=expired,
            ttl_seconds=self.ttl,
            entries=entries,
        )
