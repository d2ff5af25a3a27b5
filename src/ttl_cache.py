"""
Time-bounded single-value cache used by the data provider.
"""
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    fetched_at: float


class TTLCache:
    """
    Holds one value together with the time it was fetched.

    The entry is replaced wholesale on store() and never mutated. The clock
    is injectable so expiry can be tested without waiting.

    Attributes:
        ttl_seconds (float): Lifetime of a stored value
        clock (callable): Returns the current time in seconds
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entry: Optional[CacheEntry] = None

    @property
    def fetched_at(self) -> Optional[float]:
        return self._entry.fetched_at if self._entry else None

    @property
    def age(self) -> Optional[float]:
        if self._entry is None:
            return None
        return self.clock() - self._entry.fetched_at

    @property
    def is_fresh(self) -> bool:
        age = self.age
        return age is not None and age < self.ttl_seconds

    def get(self) -> Any:
        """Cached value, or None when empty or expired."""
        if not self.is_fresh:
            return None
        return self._entry.value

    def store(self, value: Any) -> Any:
        self._entry = CacheEntry(value=value, fetched_at=self.clock())
        return value

    def invalidate(self) -> None:
        self._entry = None
