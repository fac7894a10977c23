"""Bounded, time-expiring cache of LLM responses keyed by request fingerprint."""

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from strata.utils.clock import Clock, SYSTEM_CLOCK

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 50
DEFAULT_TTL_SECONDS = 5 * 60


@dataclass
class CacheEntry:
    value: str
    saved_at: float


class ResponseCache:
    """LRU cache with a per-entry TTL.

    Access order is kept in an OrderedDict: a hit moves the key to the end,
    and inserts beyond ``max_entries`` drop from the front.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = SYSTEM_CLOCK,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock.time() - entry.saved_at > self.ttl_seconds:
                del self._entries[key]
                logger.debug("Cache entry expired")
                return None
            self._entries.move_to_end(key)
            return entry.value

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(value=value, saved_at=self._clock.time())
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        # Presence only; does not touch recency or purge expired entries
        with self._lock:
            return key in self._entries
