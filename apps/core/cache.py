"""
In-process TTL cache used in front of aggregation and analytics results.

The cache holds no authoritative state: every miss can be recomputed from
the reading store.
"""
import json
import logging
import re
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TTLCache:
    """
    Key -> (value, expiry) store with per-key TTL.

    Expired entries are evicted lazily on read and by an optional background
    sweeper started with ``start()`` and stopped with ``stop()``.
    """

    def __init__(self, default_ttl: int = 3600, sweep_interval: int = 300):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._store: Dict[str, Any] = {}
        self._meta: Dict[str, Dict] = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    # Lifecycle

    def start(self):
        """Start the background sweep thread (idempotent)."""
        if self._sweeper and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop,
            name='ttl-cache-sweeper',
            daemon=True,
        )
        self._sweeper.start()
        logger.debug(f"Cache sweeper started (interval: {self.sweep_interval}s)")

    def stop(self, timeout: float = 5.0):
        """Stop the sweep thread."""
        self._stop_event.set()
        if self._sweeper:
            self._sweeper.join(timeout=timeout)
            self._sweeper = None
        logger.debug("Cache sweeper stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def _sweep_loop(self):
        while not self._stop_event.wait(self.sweep_interval):
            self.cleanup_expired()

    # Operations

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value or None if missing or expired."""
        with self._lock:
            if key not in self._store:
                logger.debug(f"Cache miss: {key}")
                return None

            meta = self._meta[key]
            if meta['expires_at'] is not None and time.monotonic() > meta['expires_at']:
                logger.debug(f"Cache expired: {key}")
                del self._store[key]
                del self._meta[key]
                return None

            meta['hits'] += 1
            meta['last_accessed'] = time.monotonic()
            logger.debug(f"Cache hit: {key}")
            return self._store[key]

    def set(self, key: str, value: Any, ttl: Optional[int] = None):
        """
        Store a value.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds; 0 or negative means no expiry
        """
        ttl = self.default_ttl if ttl is None else ttl
        now = time.monotonic()
        with self._lock:
            self._store[key] = value
            self._meta[key] = {
                'created_at': now,
                'expires_at': now + ttl if ttl > 0 else None,
                'last_accessed': now,
                'hits': 0,
                'size': _estimate_size(value),
            }
        logger.debug(f"Cache set: {key} (TTL: {ttl}s)")

    def get_or_set(self, key: str, factory: Callable[[], Any], ttl: Optional[int] = None) -> Tuple[Any, bool]:
        """
        Return (value, cached). On a miss the factory is called and its
        result stored. Factory exceptions propagate and nothing is cached.
        """
        value = self.get(key)
        if value is not None:
            return value, True

        value = factory()
        if value is not None:
            self.set(key, value, ttl)
        return value, False

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        with self._lock:
            existed = self._store.pop(key, None) is not None
            self._meta.pop(key, None)
        if existed:
            logger.debug(f"Cache deleted: {key}")
        return existed

    def invalidate_pattern(self, pattern: str) -> int:
        """
        Delete every key matching pattern. Only ``*`` is a wildcard.

        Returns:
            Number of keys invalidated
        """
        regex = re.compile('^' + '.*'.join(re.escape(part) for part in pattern.split('*')) + '$')

        with self._lock:
            matched = [key for key in self._store if regex.match(key)]
            for key in matched:
                del self._store[key]
                del self._meta[key]

        logger.info(f"Invalidated {len(matched)} cache entries matching pattern: {pattern}")
        return len(matched)

    def clear(self):
        with self._lock:
            size = len(self._store)
            self._store.clear()
            self._meta.clear()
        logger.info(f"Cleared all cache ({size} entries)")

    def cleanup_expired(self) -> int:
        """Evict every expired entry regardless of access."""
        now = time.monotonic()
        with self._lock:
            expired = [
                key for key, meta in self._meta.items()
                if meta['expires_at'] is not None and now > meta['expires_at']
            ]
            for key in expired:
                del self._store[key]
                del self._meta[key]

        if expired:
            logger.info(f"Cleaned up {len(expired)} expired cache entries")
        return len(expired)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._store.keys())

    def stats(self) -> Dict:
        now = time.monotonic()
        with self._lock:
            total_hits = sum(meta['hits'] for meta in self._meta.values())
            total_size = sum(meta['size'] for meta in self._meta.values())
            expired = sum(
                1 for meta in self._meta.values()
                if meta['expires_at'] is not None and now > meta['expires_at']
            )
            total_keys = len(self._store)

        return {
            'total_keys': total_keys,
            'total_size': total_size,
            'total_hits': total_hits,
            'expired_keys': expired,
            'hit_rate': round(total_hits / total_keys, 2) if total_keys else 0,
        }

    def __len__(self):
        with self._lock:
            return len(self._store)


def _estimate_size(value) -> int:
    """Rough size of a cached value in bytes."""
    try:
        return len(json.dumps(value, default=str).encode('utf-8'))
    except (TypeError, ValueError):
        return 1000


def cache_from_settings() -> TTLCache:
    """Build a cache configured from URBAN_CLIMATE_SETTINGS (not started)."""
    from django.conf import settings

    config = settings.URBAN_CLIMATE_SETTINGS
    return TTLCache(
        default_ttl=config.get('CACHE_TTL', {}).get('DEFAULT', 3600),
        sweep_interval=config.get('CACHE_SWEEP_INTERVAL', 300),
    )
