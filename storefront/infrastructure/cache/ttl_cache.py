"""
Single-value in-memory cache with TTL.

One instance per cached collection (vendors, products). Time comes from an
injected clock so expiry is deterministic in tests.
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]

DEFAULT_TTL_SECONDS = 600.0


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value and the clock reading at which it was stored."""

    value: T
    stored_at: float

    def is_valid(self, now: float, ttl_seconds: float) -> bool:
        return now - self.stored_at < ttl_seconds


class TTLCache(Generic[T]):
    """Holds the last computed value of one collection.

    An expired entry reads as a miss through ``get()`` but stays available
    through ``peek()`` so callers can serve stale data when a refresh fails.

    Example:
        >>> cache = TTLCache(name="vendors", ttl_seconds=600)
        >>> cache.set(["Acme"])
        >>> assert cache.get() == ["Acme"]
    """

    def __init__(
        self,
        name: str,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            name: Label used in log events
            ttl_seconds: Time-to-live (default 10 minutes)
            clock: Monotonic time source in seconds
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.name = name
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None

    def get(self) -> Optional[T]:
        """Return the value if present and within TTL, else None."""
        entry = self._entry
        if entry is None:
            logger.debug("Cache miss", cache=self.name)
            return None

        if not entry.is_valid(self._clock(), self.ttl_seconds):
            logger.debug("Cache expired", cache=self.name, age=round(self.age() or 0.0, 2))
            return None

        logger.debug("Cache hit", cache=self.name)
        return entry.value

    def peek(self) -> Optional[T]:
        """Return the last stored value regardless of age."""
        return self._entry.value if self._entry is not None else None

    def set(self, value: T) -> None:
        """Replace value and timestamp together."""
        self._entry = CacheEntry(value=value, stored_at=self._clock())
        logger.debug("Cached value", cache=self.name, ttl=self.ttl_seconds)

    def age(self) -> Optional[float]:
        """Seconds since the value was stored, or None when empty."""
        if self._entry is None:
            return None
        return self._clock() - self._entry.stored_at

    def is_fresh(self) -> bool:
        return self._entry is not None and self._entry.is_valid(self._clock(), self.ttl_seconds)

    def clear(self) -> None:
        """Drop the cached value."""
        self._entry = None
        logger.info("Cache cleared", cache=self.name)
