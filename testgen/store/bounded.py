"""
Bounded Store - In-memory key/value map with LRU eviction and optional TTL
"""
import time
from collections import OrderedDict
from typing import Callable, Generic, Iterator, Optional, Tuple, TypeVar


V = TypeVar("V")


class BoundedStore(Generic[V]):
    """
    Keeps at most ``max_entries`` values; the least recently used entry is
    evicted first. Entries older than ``ttl_seconds`` are dropped on access
    (``ttl_seconds <= 0`` disables expiry).
    """

    def __init__(
        self,
        max_entries: int,
        ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._expired(stored_at):
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def pop(self, key: str) -> Optional[V]:
        entry = self._entries.pop(key, None)
        return entry[1] if entry else None

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> Iterator[str]:
        return iter(list(self._entries.keys()))

    def _expired(self, stored_at: float) -> bool:
        return self.ttl_seconds > 0 and self._clock() - stored_at > self.ttl_seconds

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
