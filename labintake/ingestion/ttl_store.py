import threading
import time
from collections.abc import Callable
from typing import Generic, TypeVar

K = TypeVar("K")
V = TypeVar("V")


class TtlStore(Generic[K, V]):
    """Thread-safe keyed map whose entries expire after a fixed age.

    Expiry is not automatic: a periodic task calls ``evict_expired``. The
    clock is injectable so eviction can be tested without sleeping.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[K, tuple[float, V]] = {}

    def add(self, key: K, value: V) -> bool:
        """Insert only if the key is absent. Returns False if it is live."""
        with self._lock:
            if key in self._items:
                return False
            self._items[key] = (self._clock(), value)
            return True

    def get(self, key: K) -> V | None:
        with self._lock:
            item = self._items.get(key)
        return item[1] if item is not None else None

    def pop(self, key: K) -> V | None:
        with self._lock:
            item = self._items.pop(key, None)
        return item[1] if item is not None else None

    def update(self, key: K, mutate: Callable[[V], None]) -> V | None:
        """Apply ``mutate`` to the stored value while holding the lock."""
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            mutate(item[1])
            return item[1]

    def evict_expired(self) -> list[K]:
        """Drop entries older than the TTL and return their keys."""
        cutoff = self._clock() - self._ttl_seconds
        with self._lock:
            expired = [k for k, (created, _) in self._items.items() if created < cutoff]
            for key in expired:
                del self._items[key]
        return expired

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
