"""In-memory cache with per-entry expiry and a background reaper.

Entries become invisible to ``get`` once their TTL has passed. They are
physically dropped by ``sweep`` (run periodically by the reaper thread, or
lazily on access) once ``stale_grace_seconds`` has also elapsed. With the
default grace of zero an entry disappears exactly at expiry.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Optional, TypeVar

from ..logging_config import get_logger


logger = get_logger("tools.cache")

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 1800.0
DEFAULT_CHECK_PERIOD_SECONDS = 120.0


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    key: str
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        check_period_seconds: float = DEFAULT_CHECK_PERIOD_SECONDS,
        stale_grace_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if stale_grace_seconds < 0:
            raise ValueError("stale_grace_seconds must not be negative")

        self.ttl_seconds = ttl_seconds
        self.check_period_seconds = check_period_seconds
        self.stale_grace_seconds = stale_grace_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._reaper: Optional[threading.Thread] = None

    def set(self, key: str, value: V) -> None:
        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + self.ttl_seconds)
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str) -> Optional[V]:
        """Return the value only while the entry is unexpired."""
        now = self._clock()
        with self._lock:
            entry = self._lookup(key, now)
        if entry is None or now >= entry.expires_at:
            return None
        return entry.value

    def get_stale(self, key: str) -> Optional[V]:
        """Return the value while it is still retained, expired or not."""
        with self._lock:
            entry = self._lookup(key, self._clock())
        return entry.value if entry is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def sweep(self) -> int:
        """Physically remove every entry past its retention time."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if self._is_dead(e, now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def start_reaper(self) -> None:
        if self._reaper is not None and self._reaper.is_alive():
            return
        self._stop.clear()
        self._reaper = threading.Thread(
            target=self._reap_forever, name="ttl-cache-reaper", daemon=True
        )
        self._reaper.start()
        logger.info("cache_reaper_started", check_period_seconds=self.check_period_seconds)

    def stop_reaper(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._reaper is not None:
            self._reaper.join(timeout)
            self._reaper = None
            logger.info("cache_reaper_stopped")

    def _reap_forever(self) -> None:
        while not self._stop.wait(self.check_period_seconds):
            removed = self.sweep()
            if removed:
                logger.debug("cache_swept", removed=removed, remaining=len(self))

    def _lookup(self, key: str, now: float) -> Optional[CacheEntry[V]]:
        # Caller holds the lock.
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_dead(entry, now):
            del self._entries[key]
            return None
        return entry

    def _is_dead(self, entry: CacheEntry[V], now: float) -> bool:
        return now >= entry.expires_at + self.stale_grace_seconds
