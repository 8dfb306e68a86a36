"""
Rate limiter for the tracking pipeline.

Responsibilities:
    - Admit or reject tracking events per identifier (the fingerprint)
      over a trailing time window
    - Keep memory bounded: at most `max_identifiers` histories, least
      recently used evicted first, each history expiring one window after
      its last touch; expired histories are purged when the map is read
      and before LRU eviction

Notes:
    - Soft, process-local limit. Several workers each hold their own
      limiter, so the effective limit scales with the worker count.
    - The limiter is an explicit object owned by the app factory; the clock
      is injectable so tests can step time instead of sleeping.

LLM Prompt Example:
    "Show how a sliding-window limiter backed by a bounded LRU map behaves
    under bursty traffic and how you would move it to Redis (ZADD + ZREMRANGEBYSCORE)."
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

DEFAULT_LIMIT = 10
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_MAX_IDENTIFIERS = 500


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int


@dataclass
class _Entry:
    timestamps: List[float]
    expires_at: float


class RateLimiter:
    """
    Trailing-window limiter with LRU-bounded, self-expiring histories.

    Args:
        limit (int): Default admits per identifier per window.
        window_seconds (float): Trailing window length.
        max_identifiers (int): Maximum histories kept at once.
        clock (Callable[[], float]): Monotonic seconds source.
    """

    def __init__(
        self,
        limit: int = DEFAULT_LIMIT,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_identifiers: int = DEFAULT_MAX_IDENTIFIERS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if max_identifiers < 1:
            raise ValueError("max_identifiers must be >= 1")
        self.limit = limit
        self.window_seconds = window_seconds
        self.max_identifiers = max_identifiers
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._lock = threading.Lock()

    def admit(self, identifier: str, limit: Optional[int] = None) -> RateLimitResult:
        """
        Try to admit one event for `identifier`.

        Args:
            identifier (str): Rate-limit subject, normally the fingerprint.
            limit (Optional[int]): Per-call override of the default limit.

        Returns:
            RateLimitResult: allowed=False and remaining=0 when the window is
            full; otherwise allowed=True and remaining=limit - admitted count.
        """
        limit = self.limit if limit is None else limit
        with self._lock:
            now = self._clock()
            entry = self._entries.get(identifier)
            if entry is None or entry.expires_at <= now:
                entry = _Entry(timestamps=[], expires_at=now + self.window_seconds)

            window_start = now - self.window_seconds
            entry.timestamps = [ts for ts in entry.timestamps if ts > window_start]

            if len(entry.timestamps) >= limit:
                # rejections touch recency only, not expiry
                if identifier in self._entries:
                    self._entries.move_to_end(identifier)
                return RateLimitResult(allowed=False, remaining=0)

            entry.timestamps.append(now)
            self._store(identifier, entry, now)
            return RateLimitResult(allowed=True, remaining=limit - len(entry.timestamps))

    def clear(self, identifier: str) -> None:
        """Drop the history for one identifier."""
        with self._lock:
            self._entries.pop(identifier, None)

    def __len__(self) -> int:
        """Number of live histories; expired ones are purged first."""
        with self._lock:
            self._purge_expired(self._clock())
            return len(self._entries)

    def snapshot(self) -> Dict[str, int]:
        """Identifier -> timestamps currently held (for debugging/tests)."""
        with self._lock:
            self._purge_expired(self._clock())
            return {key: len(entry.timestamps) for key, entry in self._entries.items()}

    # caller holds self._lock
    def _store(self, identifier: str, entry: _Entry, now: float) -> None:
        entry.expires_at = now + self.window_seconds
        self._entries[identifier] = entry
        self._entries.move_to_end(identifier)
        if len(self._entries) > self.max_identifiers:
            self._purge_expired(now)
        while len(self._entries) > self.max_identifiers:
            self._entries.popitem(last=False)

    # caller holds self._lock
    def _purge_expired(self, now: float) -> None:
        for key in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[key]
