# marketstock/utils/cache.py
"""In-memory cache of fetched collections, keyed by collection name.

A key marked stale is refetched lazily on its next read. Listeners subscribe
per key and are told whenever that key is invalidated.
"""
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Set

logger = logging.getLogger(__name__)

PRODUCTS = "products"
SUPPLIERS = "suppliers"
MARKETS = "markets"
CATEGORIES = "categories"


class QueryCache:
    def __init__(self):
        self._entries: Dict[str, Any] = {}
        self._stale: Set[str] = set()
        # Bumped on every invalidation; a fetch only lands if its generation is still current
        self._generations: Dict[str, int] = defaultdict(int)
        self._subscribers: Dict[str, List[Callable[[str], None]]] = defaultdict(list)
        self._lock = threading.Lock()

    def get(self, key: str, fetcher: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._entries and key not in self._stale:
                logger.debug("Cache HIT for %s", key)
                return self._entries[key]
            generation = self._generations[key]

        # The fetch runs outside the lock; a failing fetcher leaves the entry as it was
        logger.debug("Cache MISS for %s", key)
        data = fetcher()
        with self._lock:
            if self._generations[key] != generation:
                # Invalidated while fetching: the result may predate the write
                logger.debug("Discarding fetch of %s, invalidated meanwhile", key)
                return data
            self._entries[key] = data
            self._stale.discard(key)
        return data

    def is_stale(self, key: str) -> bool:
        with self._lock:
            return key not in self._entries or key in self._stale

    def invalidate(self, *keys: str) -> None:
        with self._lock:
            self._stale.update(keys)
            for key in keys:
                self._generations[key] += 1
            listeners = [(key, list(self._subscribers.get(key, ()))) for key in keys]
        for key, callbacks in listeners:
            for callback in callbacks:
                callback(key)

    def subscribe(self, key: str, callback: Callable[[str], None]) -> Callable[[], None]:
        """Register ``callback`` for invalidations of ``key``; returns an unsubscribe function."""
        with self._lock:
            self._subscribers[key].append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers.get(key, []):
                    self._subscribers[key].remove(callback)

        return unsubscribe

    def clear(self) -> None:
        with self._lock:
            for key in list(self._generations):
                self._generations[key] += 1
            self._entries.clear()
            self._stale.clear()


query_cache = QueryCache()


def get_query_cache() -> QueryCache:
    return query_cache


@contextmanager
def invalidate_after(cache: QueryCache, *keys: str):
    """Mark ``keys`` stale once the wrapped mutation completes, whether it succeeded or not."""
    try:
        yield
    finally:
        cache.invalidate(*keys)
