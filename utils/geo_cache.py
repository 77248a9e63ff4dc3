"""
In-process cache for geocoding and routing results.

A TTLCache instance is owned by whoever serves the requests (the tool
module keeps one per provider). Entries expire after a fixed TTL and the
least recently used entry is evicted once max_entries is reached.
"""

import hashlib
import threading
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Callable, Hashable, Optional, Tuple

from utils.schedule_validity import parse_valid_scheduled_at, to_iso_utc

DEPARTURE_BUCKET_MINUTES = 30
COORD_PRECISION = 6


class TTLCache:
    """
    Thread-safe LRU cache with per-entry expiry.

    Args:
        ttl_seconds: Lifetime of an entry; values <= 0 disable caching
        max_entries: Upper bound on stored entries
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None

            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None

            self._entries.move_to_end(key)
            return value

    def set(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return

        with self._lock:
            if key in self._entries:
                del self._entries[key]
            self._entries[key] = (self._clock() + self.ttl_seconds, value)

            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def normalize_address_key(address: str) -> str:
    """Trim and collapse whitespace."""
    return " ".join((address or "").split())


def geocode_cache_key(address: str) -> str:
    """sha256 hex digest of the lower-cased, whitespace-normalized address."""
    normalized = normalize_address_key(address).lower()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def to_departure_bucket(departure_time: Any = None, now: Optional[datetime] = None) -> str:
    """
    Floor a departure time to its 30-minute bucket as an ISO UTC string.

    Missing or unparsable departure times use the current time.
    """
    parsed = parse_valid_scheduled_at(departure_time)
    if parsed is None:
        parsed = now or datetime.now(timezone.utc)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)

    floored_minute = (parsed.minute // DEPARTURE_BUCKET_MINUTES) * DEPARTURE_BUCKET_MINUTES
    return to_iso_utc(parsed.replace(minute=floored_minute, second=0, microsecond=0))


def normalize_coordinate(value: float) -> float:
    return round(float(value), COORD_PRECISION)


def route_cache_key(
    origin_lat: float,
    origin_lng: float,
    dest_lat: float,
    dest_lng: float,
    departure_bucket: str,
) -> Tuple[float, float, float, float, str]:
    """Cache key for a route: coordinates rounded to 6 decimals plus the departure bucket."""
    return (
        normalize_coordinate(origin_lat),
        normalize_coordinate(origin_lng),
        normalize_coordinate(dest_lat),
        normalize_coordinate(dest_lng),
        departure_bucket,
    )
