# backend/app/utils/cache.py
import time
import asyncio
import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, Optional, Iterable, Tuple

logger = logging.getLogger(__name__)

# -----------------------------
# Bounded in-memory TTL cache (sync)
# -----------------------------
class SimpleTTLCache:
    """
    Per-key TTL plus an entry cap; the least recently used key goes first
    once the cap is reached. Safe to share between threads.
    """

    def __init__(self, default_ttl: Optional[int] = 600, max_entries: int = 5000):
        # key -> (value, expiry_ts or None), oldest access first
        self._data: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _now(self) -> float:
        return time.time()

    def get(self, key: str, default: Any = None) -> Any:
        now = self._now()
        with self._lock:
            item = self._data.get(key)
            if item is None:
                self.misses += 1
                return default
            value, expiry = item
            if expiry is not None and expiry <= now:
                del self._data[key]
                self.misses += 1
                return default
            self._data.move_to_end(key)
            self.hits += 1
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        eff_ttl = ttl if ttl is not None else self._default_ttl
        expiry = (self._now() + eff_ttl) if eff_ttl is not None else None
        with self._lock:
            self._data[key] = (value, expiry)
            self._data.move_to_end(key)
            while len(self._data) > self._max_entries:
                evicted, _ = self._data.popitem(last=False)
                logger.debug("Cache full, evicted %s", evicted)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self.hits = self.misses = 0

    def keys(self) -> Iterable[str]:
        with self._lock:
            return list(self._data.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def sweep(self) -> int:
        """Drop expired keys; returns how many went."""
        now = self._now()
        with self._lock:
            expired = [k for k, (_, exp) in self._data.items() if exp is not None and exp <= now]
            for k in expired:
                del self._data[k]
        return len(expired)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"entries": len(self._data), "hits": self.hits, "misses": self.misses}


# Singleton cache instance used everywhere
cache = SimpleTTLCache(default_ttl=600)


# -----------------------------
# Async convenience layer with type-specific TTLs
# -----------------------------

# Agromonitoring refresh cadence (seconds)
CACHE_TTL = {
    "weather":  30 * 60,        # current conditions change fast
    "forecast": 3  * 3600,      # 3-hourly model runs
    "ndvi":     24 * 3600,      # a new scene every few days at best
    "soil":     6  * 3600,
    "uvi":      3600,
    "geo":      30 * 24 * 3600, # pincodes don't move
    "default":  3600,
}

_sweeper: Optional[asyncio.Task] = None

def _get_ttl(cache_type: str) -> int:
    return int(CACHE_TTL.get(cache_type, CACHE_TTL["default"]))

async def init_cache():
    """Init hook; starts a lightweight periodic sweeper."""
    global _sweeper
    logger.info("Cache initialized (in-memory mode)")
    if _sweeper is None or _sweeper.done():
        _sweeper = asyncio.create_task(_cleanup_task())

async def close_cache():
    global _sweeper
    if _sweeper is not None:
        _sweeper.cancel()
        _sweeper = None

async def _cleanup_task():
    while True:
        await asyncio.sleep(3600)
        n = cache.sweep()
        if n:
            logger.debug("Cache sweep removed %d expired keys", n)

# --- JSON helpers ---

async def get_json(key: str, cache_type: str = "default") -> Optional[Any]:
    val = cache.get(key)
    if val is not None:
        logger.debug("%s cache hit: %s", cache_type.title(), key)
    return val

async def set_json(key: str, val: Any, cache_type: str = "default"):
    ttl_sec = _get_ttl(cache_type)
    cache.set(key, val, ttl=ttl_sec)
    logger.debug("%s cached for %ds: %s", cache_type.title(), ttl_sec, key)


# -----------------------------
# Flush utilities
# -----------------------------

def flush_all() -> int:
    """Clear entire cache; returns count of keys flushed."""
    n = len(cache)
    cache.clear()
    return n

def flush_prefix(prefix: str) -> int:
    """Remove only keys starting with `prefix` (e.g. 'agro:ndvi:', 'geo:')."""
    removed = 0
    for k in list(cache.keys()):
        if str(k).startswith(prefix):
            cache.delete(k)
            removed += 1
    return removed
