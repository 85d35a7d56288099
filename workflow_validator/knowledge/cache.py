"""Injectable caches owned by the similarity services.

Two shapes are needed:

  TTLCache               keyed values that go stale after ``ttl_seconds``.
                         Stale values are kept (not evicted) so a caller whose
                         refresh fails can fall back to the last good value.
  SuggestionResultCache  bounded insertion-ordered map.  When it grows past
                         ``max_entries`` the oldest entries are dropped until
                         ``keep`` remain.

Neither cache is process-global: every service instance owns its own, and
tests inject a fake clock to exercise expiry deterministically.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS: float = 300.0


class TTLCache:
    """Time-bounded cache with explicit invalidation and stale reads."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        # key -> (stored_at, value)
        self._entries: dict[Hashable, tuple[float, Any]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: Hashable) -> Any | None:
        """Return the fresh value for *key*, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self._ttl:
            return None
        return value

    def get_stale(self, key: Hashable) -> Any | None:
        """Return the last stored value for *key* regardless of age."""
        entry = self._entries.get(key)
        return entry[1] if entry is not None else None

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = (self._clock(), value)

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key, or every key when *key* is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def keys(self) -> list[Hashable]:
        return list(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)


class SuggestionResultCache:
    """Bounded memo of computed suggestion lists."""

    def __init__(self, max_entries: int = 100, keep: int = 50) -> None:
        if keep > max_entries:
            raise ValueError("keep must not exceed max_entries")
        self._max_entries = max_entries
        self._keep = keep
        self._entries: OrderedDict[Hashable, Any] = OrderedDict()

    def get(self, key: Hashable) -> Any | None:
        return self._entries.get(key)

    def set(self, key: Hashable, value: Any) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        if len(self._entries) > self._max_entries:
            while len(self._entries) > self._keep:
                self._entries.popitem(last=False)
            logger.debug(
                "[SuggestionResultCache] Evicted to %d most recent entries", self._keep
            )

    def invalidate(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
