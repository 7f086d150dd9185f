"""Memo table of reference-clip futures.

Entries are futures rather than clips so concurrent requests for the same key
share one in-flight extraction. Optional bounds:
- ``max_entries``: least-recently-used entries are dropped past this size
- ``ttl_seconds``: settled entries older than this are treated as missing
"""

from __future__ import annotations

import asyncio
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

from gesture_coach.motion.config import MOTION_LOGGER as logger

Entry = Tuple["asyncio.Future[Any]", float]


class ClipCache:
    def __init__(
        self,
        *,
        max_entries: Optional[int] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries is not None and max_entries <= 0:
            raise ValueError(f"max_entries must be positive when set; received {max_entries!r}.")
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive when set; received {ttl_seconds!r}.")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Entry]" = OrderedDict()

    def _expired(self, entry: Entry) -> bool:
        future, stored_at = entry
        if self.ttl_seconds is None or not future.done():
            return False
        return self._clock() - stored_at > self.ttl_seconds

    def get(self, key: str) -> Optional["asyncio.Future[Any]"]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._expired(entry):
            logger.debug("Reference cache entry expired: %s", key)
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry[0]

    def put(self, key: str, future: "asyncio.Future[Any]") -> None:
        self._entries[key] = (future, self._clock())
        self._entries.move_to_end(key)
        if self.max_entries is not None:
            while len(self._entries) > self.max_entries:
                oldest, _ = self._entries.popitem(last=False)
                logger.debug("Reference cache full; dropped %s", oldest)

    def evict(self, key: str, future: Optional["asyncio.Future[Any]"] = None) -> bool:
        """Remove ``key``; with ``future`` given, only if it is still the cached one."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if future is not None and entry[0] is not future:
            return False
        del self._entries[key]
        return True

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def stats(self) -> Dict[str, int]:
        settled = sum(1 for future, _ in self._entries.values() if future.done())
        return {"entries": len(self._entries), "settled": settled, "pending": len(self._entries) - settled}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


__all__ = ["ClipCache"]
