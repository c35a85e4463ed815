"""
Read-Through Caching for the Slacker API.

Third-party listings (crypto prices) are expensive and rate limited, so they
are served through a `ReadThroughCache`: callers ask for a value by query
parameters, and the cache either answers from a fresh entry or loads a new one
from the upstream source.

Key Components:
- `CacheEntry`: the stored value plus the clock reading taken when it was
  fetched. Entries are replaced wholesale, never patched.
- `CacheBackend` (ABC): where entries live. `MemoryCacheBackend` keeps them in
  a dict for a single process; another backend can be dropped in without
  touching callers.
- `ReadThroughCache`: freshness check, loading, and single-flight coalescing.
  While a key is being loaded, every other caller asking for the same key
  awaits the same in-flight load instead of starting its own.
- `cache_key`: canonical key from keyword parameters.

Error policy: by default a failed load is raised to every waiter and the old
entry is left untouched (not served). With `serve_stale_on_error=True` the
last entry, if any, is returned instead and the failure is only logged.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 300


@dataclass(frozen=True)
class CacheEntry:
    """Cached value with the clock reading of its fetch"""

    value: Any
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at


class CacheBackend(ABC):
    """Abstract storage for cache entries"""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        pass

    @abstractmethod
    async def set(self, key: str, entry: CacheEntry) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    async def clear(self) -> None:
        pass

    @abstractmethod
    async def keys(self) -> List[str]:
        pass


class MemoryCacheBackend(CacheBackend):
    """Process-local dict of entries; overwrite is the only eviction"""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def set(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        self._entries.clear()

    async def keys(self) -> List[str]:
        return list(self._entries.keys())


def cache_key(**params) -> str:
    """Canonical key: sorted `name=value` pairs, lists joined with commas"""
    parts = []
    for name in sorted(params):
        value = params[name]
        if value is None:
            continue
        if isinstance(value, (list, tuple, set, frozenset)):
            value = ",".join(str(item) for item in value)
        parts.append(f"{name}={value}")
    return "&".join(parts) or "default"


class ReadThroughCache:
    """TTL cache in front of an async loader, with single-flight loads"""

    def __init__(
        self,
        loader: Callable[..., Awaitable[Any]],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        backend: Optional[CacheBackend] = None,
        clock: Callable[[], float] = time.monotonic,
        serve_stale_on_error: bool = False,
        name: str = "read_through",
    ):
        self.loader = loader
        self.ttl_seconds = ttl_seconds
        self.backend = backend or MemoryCacheBackend()
        self.clock = clock
        self.serve_stale_on_error = serve_stale_on_error
        self.name = name
        self._inflight: Dict[str, asyncio.Future] = {}
        self.hits = 0
        self.misses = 0
        self.fetches = 0
        self.coalesced = 0
        self.errors = 0
        self.stale_served = 0

    def is_fresh(self, entry: CacheEntry) -> bool:
        return entry.age(self.clock()) < self.ttl_seconds

    async def get(self, **params) -> Any:
        """Return the value for `params`, loading it when missing or expired"""
        key = cache_key(**params)
        entry = await self.backend.get(key)
        if entry is not None and self.is_fresh(entry):
            self.hits += 1
            logger.debug(f"{self.name} cache hit for {key}")
            return entry.value

        self.misses += 1
        inflight = self._inflight.get(key)
        if inflight is None:
            inflight = asyncio.ensure_future(self._load(key, params, entry))
            self._inflight[key] = inflight
            inflight.add_done_callback(lambda done, k=key: self._forget(k, done))
        else:
            self.coalesced += 1
            logger.debug(f"{self.name} joining in-flight load for {key}")

        # One caller giving up must not cancel the load the others are waiting on.
        return await asyncio.shield(inflight)

    def _forget(self, key: str, done: asyncio.Future) -> None:
        if self._inflight.get(key) is done:
            del self._inflight[key]
        if not done.cancelled():
            # Mark the exception retrieved even if every waiter was cancelled.
            done.exception()

    async def _load(self, key: str, params: Dict[str, Any], previous: Optional[CacheEntry]) -> Any:
        self.fetches += 1
        logger.debug(f"{self.name} loading {key} from upstream")
        try:
            value = await self.loader(**params)
        except Exception as e:
            self.errors += 1
            if self.serve_stale_on_error and previous is not None:
                self.stale_served += 1
                logger.warning(
                    f"{self.name} upstream load failed for {key}, serving stale entry: {e}"
                )
                return previous.value
            logger.error(f"{self.name} upstream load failed for {key}: {e}")
            raise

        await self.backend.set(key, CacheEntry(value=value, fetched_at=self.clock()))
        return value

    async def invalidate(self, **params) -> bool:
        return await self.backend.delete(cache_key(**params))

    async def clear(self) -> None:
        await self.backend.clear()
        logger.info(f"{self.name} cache cleared")

    async def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "name": self.name,
            "ttl_seconds": self.ttl_seconds,
            "keys": await self.backend.keys(),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
            "fetches": self.fetches,
            "coalesced": self.coalesced,
            "errors": self.errors,
            "stale_served": self.stale_served,
            "in_flight": len(self._inflight),
        }
