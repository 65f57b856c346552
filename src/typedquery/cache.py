"""
Process-wide caching for derived query metadata.

Holds translated statements so repeated executions of the same descriptor do
not re-tokenize their SQL. Uses cachetools TTLCache for automatic expiration.
"""
import functools
import logging
import threading

import cachetools
from cachetools.keys import hashkey

logger = logging.getLogger(__name__)


class Cache:
    """Named TTL caches behind one lock.

    `get_instance()` returns the process-wide instance used by `cached`;
    other instances keep their own caches.
    """

    _instance = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._caches: dict[str, cachetools.TTLCache] = {}
        self.lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 100, ttl: int = 300) -> cachetools.TTLCache:
        """Get or create a TTL cache with the given name.

        Args:
            name: Name of the cache
            maxsize: Maximum cache size, used only on creation
            ttl: Time-to-live in seconds, used only on creation
        """
        with self.lock:
            if name not in self._caches:
                self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
            return self._caches[name]

    def names(self) -> list[str]:
        with self.lock:
            return sorted(self._caches)

    def clear_all(self) -> None:
        with self.lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_cache(self, name: str) -> None:
        with self.lock:
            if name in self._caches:
                self._caches[name].clear()


def cached(cache_name: str, maxsize: int = 100, ttl: int = 300):
    """Decorator caching a pure function's result by its positional arguments.

    Args:
        cache_name: Name of the managed cache
        maxsize: Maximum cache size
        ttl: Time-to-live in seconds
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args):
            manager = Cache.get_instance()
            cache = manager.get_cache(cache_name, maxsize=maxsize, ttl=ttl)
            key = hashkey(*args)
            with manager.lock:
                if key in cache:
                    return cache[key]
            logger.debug(f'Cache miss for {func.__name__}')
            result = func(*args)
            with manager.lock:
                cache[key] = result
            return result

        return wrapper
    return decorator
