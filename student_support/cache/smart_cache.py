"""
Smart client-side cache with stale-while-revalidate

Keeps ticket lists responsive without redundant network fetches:
- valid entries are served directly
- stale entries are served and refreshed in the background
- expired entries force the caller to wait for a fresh fetch
- concurrent fetches of one key share a single request
- a failed forced fetch falls back to a non-expired entry

The cache is a plain object: construct one and pass it to the
controllers that need it.
"""
import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

from student_support.exceptions import CacheConfigError
from student_support.utils.logger import get_logger

logger = get_logger(__name__)

Fetcher = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class CacheConfig:
    """
    Freshness windows of a cache entry, in seconds.

    Ordering is enforced: 0 <= stale_while_revalidate <= ttl <= max_age.
    An entry is valid below `ttl`, stale from `ttl` up to `max_age` and
    expired from `max_age` on.

    Raises:
        CacheConfigError: If a window is negative or out of order
    """
    ttl: float
    max_age: float
    stale_while_revalidate: float = 0.0

    def __post_init__(self):
        if self.ttl <= 0:
            raise CacheConfigError(f"ttl must be positive, got {self.ttl}")
        if self.stale_while_revalidate < 0:
            raise CacheConfigError(
                f"stale_while_revalidate must not be negative, got {self.stale_while_revalidate}"
            )
        if self.ttl > self.max_age:
            raise CacheConfigError(
                f"ttl ({self.ttl}) must not exceed max_age ({self.max_age})"
            )
        if self.stale_while_revalidate > self.ttl:
            raise CacheConfigError(
                f"stale_while_revalidate ({self.stale_while_revalidate}) must not exceed ttl ({self.ttl})"
            )


DEFAULT_CONFIG = CacheConfig(ttl=5 * 60, max_age=30 * 60, stale_while_revalidate=2 * 60)

# Per data type tuning: lists refresh faster than details, details faster than user data
CACHE_CONFIGS: Dict[str, CacheConfig] = {
    "TICKETS_LIST": CacheConfig(ttl=2 * 60, max_age=10 * 60, stale_while_revalidate=30),
    "TICKET_DETAIL": CacheConfig(ttl=5 * 60, max_age=30 * 60, stale_while_revalidate=60),
    "STATS": CacheConfig(ttl=60, max_age=5 * 60, stale_while_revalidate=15),
    "USER_DATA": CacheConfig(ttl=10 * 60, max_age=60 * 60, stale_while_revalidate=2 * 60),
}


@dataclass
class CacheEntry:
    """Cached value with its write time and freshness windows"""
    key: str
    data: Any
    timestamp: float
    config: CacheConfig = field(default=DEFAULT_CONFIG)

    @property
    def expires_in(self) -> float:
        return self.config.ttl


class SmartCache:
    """
    TTL/stale/expired cache with background revalidation and
    request coalescing.

    Args:
        default_config: Windows used when a call passes no config
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        default_config: CacheConfig = DEFAULT_CONFIG,
        clock: Callable[[], float] = time.monotonic
    ):
        self.default_config = default_config
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._pending: Dict[str, asyncio.Future] = {}
        self._refreshing: Dict[str, asyncio.Task] = {}
        # Invalidation bookkeeping: a fetch that started before an
        # invalidation of its key must not write its result back.
        self._epoch = 0
        self._key_epochs: Dict[str, int] = {}
        self._clear_epoch = 0
        # start epoch -> number of fetches in flight since then
        self._inflight: Dict[int, int] = {}

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    @staticmethod
    def generate_key(prefix: str, params: Optional[Dict[str, Any]] = None) -> str:
        """
        Build a deterministic key from a prefix and parameters

        Args:
            prefix: Key namespace (e.g. "tickets:list")
            params: Parameters, serialised sorted by name

        Returns:
            `prefix` alone, or `prefix:<json>`
        """
        if params is None:
            return prefix
        ordered = {name: params[name] for name in sorted(params)}
        return f"{prefix}:{json.dumps(ordered, separators=(',', ':'), default=str)}"

    # ------------------------------------------------------------------
    # Freshness
    # ------------------------------------------------------------------

    def _age(self, entry: CacheEntry) -> float:
        return self._clock() - entry.timestamp

    def is_valid(self, entry: CacheEntry, config: Optional[CacheConfig] = None) -> bool:
        config = config or entry.config
        return self._age(entry) < config.ttl

    def is_stale(self, entry: CacheEntry, config: Optional[CacheConfig] = None) -> bool:
        config = config or entry.config
        age = self._age(entry)
        return config.ttl <= age < config.max_age

    def is_expired(self, entry: CacheEntry, config: Optional[CacheConfig] = None) -> bool:
        config = config or entry.config
        return self._age(entry) >= config.max_age

    # ------------------------------------------------------------------
    # Synchronous access
    # ------------------------------------------------------------------

    def get(self, key: str, config: Optional[CacheConfig] = None) -> Optional[Any]:
        """
        Return the cached value unless it has expired

        Expired entries are removed. Stale values are returned as-is.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None

        if self.is_expired(entry, config):
            del self._entries[key]
            return None

        return entry.data

    def set(self, key: str, data: Any, config: Optional[CacheConfig] = None) -> None:
        """Store a value stamped with the current time"""
        self._entries[key] = CacheEntry(
            key=key,
            data=data,
            timestamp=self._clock(),
            config=config or self.default_config
        )

    def has(self, key: str) -> bool:
        """True when a non-expired value is cached for the key"""
        return self.get(key) is not None

    # ------------------------------------------------------------------
    # Asynchronous access
    # ------------------------------------------------------------------

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Fetcher,
        config: Optional[CacheConfig] = None,
        force: bool = False,
        fallback: bool = True
    ) -> Any:
        """
        Return the cached value or fetch a fresh one

        Args:
            key: Cache key
            fetcher: Coroutine function producing the value
            config: Freshness windows for this call
            force: Skip the valid/stale shortcuts and fetch in the foreground
            fallback: Return a non-expired entry when the fetch fails

        Returns:
            Cached or freshly fetched value

        Raises:
            Exception: Whatever `fetcher` raised, when no non-expired
                entry is available as a fallback (or `fallback` is off)
        """
        config = config or self.default_config
        entry = self._entries.get(key)

        if entry is not None and not force:
            if self.is_valid(entry, config):
                return entry.data

            if self.is_stale(entry, config):
                self._schedule_refresh(key, fetcher, config)
                return entry.data

        if entry is not None and self.is_expired(entry, config):
            del self._entries[key]
            entry = None

        pending = self._pending.get(key)
        if pending is None:
            started_at = self._begin_fetch()
            pending = asyncio.ensure_future(self._fetch_and_cache(key, fetcher, config, started_at))
            pending.add_done_callback(lambda done, s=started_at: self._end_fetch(s))
            self._pending[key] = pending
            pending.add_done_callback(lambda done, k=key: self._clear_pending(k, done))

        try:
            return await asyncio.shield(pending)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if fallback and entry is not None and not self.is_expired(entry, config):
                logger.warning(f"Fetch failed for {key}, returning stale data: {e}")
                return entry.data
            raise

    def _clear_pending(self, key: str, future: asyncio.Future) -> None:
        if self._pending.get(key) is future:
            del self._pending[key]

    def _schedule_refresh(self, key: str, fetcher: Fetcher, config: CacheConfig) -> None:
        """Start one background refresh per key; later stale hits reuse it"""
        if key in self._refreshing or key in self._pending:
            return

        started_at = self._begin_fetch()
        task = asyncio.ensure_future(self._background_refresh(key, fetcher, config, started_at))
        task.add_done_callback(lambda done, s=started_at: self._end_fetch(s))
        self._refreshing[key] = task
        task.add_done_callback(lambda done, k=key: self._refreshing.pop(k, None))

    async def _background_refresh(self, key: str, fetcher: Fetcher, config: CacheConfig, started_at: int) -> None:
        try:
            await self._fetch_and_cache(key, fetcher, config, started_at)
            logger.debug(f"Background refresh completed: {key}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Background refresh failed for {key}: {e}")

    def _begin_fetch(self) -> int:
        """Register a fetch starting now; returns its start epoch"""
        started_at = self._epoch
        self._inflight[started_at] = self._inflight.get(started_at, 0) + 1
        return started_at

    def _end_fetch(self, started_at: int) -> None:
        remaining = self._inflight.get(started_at, 0) - 1
        if remaining > 0:
            self._inflight[started_at] = remaining
        else:
            self._inflight.pop(started_at, None)
        self._prune_epochs()

    def _prune_epochs(self) -> None:
        """Forget key invalidations no in-flight fetch started before"""
        if not self._inflight:
            self._key_epochs.clear()
            return
        oldest = min(self._inflight)
        for key in [k for k, epoch in self._key_epochs.items() if epoch <= oldest]:
            del self._key_epochs[key]

    async def _fetch_and_cache(self, key: str, fetcher: Fetcher, config: CacheConfig, started_at: int) -> Any:
        data = await fetcher()

        if max(self._key_epochs.get(key, 0), self._clear_epoch) <= started_at:
            self.set(key, data, config)
        else:
            logger.debug(f"Discarding result for invalidated key: {key}")

        return data

    async def wait_for_refreshes(self) -> None:
        """Wait until all background refreshes have finished"""
        while self._refreshing:
            await asyncio.gather(*list(self._refreshing.values()), return_exceptions=True)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, pattern: Optional[str] = None) -> None:
        """
        Drop cached entries

        Args:
            pattern: Substring matched against keys; None clears everything
        """
        self._epoch += 1

        if not pattern:
            self._entries.clear()
            self._pending.clear()
            self._clear_epoch = self._epoch
            self._key_epochs.clear()
            return

        keys = {k for k in (*self._entries, *self._pending, *self._refreshing) if pattern in k}
        for key in keys:
            self._entries.pop(key, None)
            self._pending.pop(key, None)
            self._key_epochs[key] = self._epoch
        self._prune_epochs()

    def invalidate_by_key(self, key: str) -> None:
        """Drop one exact key"""
        self._epoch += 1
        self._entries.pop(key, None)
        self._pending.pop(key, None)
        self._key_epochs[key] = self._epoch
        self._prune_epochs()

    def cleanup(self) -> None:
        """Remove every expired entry"""
        for key in [k for k, entry in self._entries.items() if self.is_expired(entry)]:
            del self._entries[key]

    def get_stats(self) -> Dict[str, Any]:
        """Cache size and per-entry freshness, for debugging"""
        return {
            "cache_size": len(self._entries),
            "pending_requests": len(self._pending),
            "background_refreshes": len(self._refreshing),
            "entries": [
                {
                    "key": key,
                    "age": self._age(entry),
                    "is_valid": self.is_valid(entry),
                    "is_stale": self.is_stale(entry),
                    "is_expired": self.is_expired(entry),
                }
                for key, entry in self._entries.items()
            ],
        }

    async def close(self) -> None:
        """Cancel background refreshes"""
        tasks = list(self._refreshing.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._refreshing.clear()


# ============================================================================
# Ticket cache helpers
# ============================================================================

def tickets_list_key(filters: Dict[str, Any]) -> str:
    """Cache key of a ticket list for the given filters"""
    return SmartCache.generate_key("tickets:list", filters)


def ticket_detail_key(ticket_id: int) -> str:
    """Cache key of a single ticket"""
    return f"ticket:{ticket_id}"


def invalidate_ticket_cache(cache: SmartCache, ticket_id: Optional[int] = None) -> None:
    """Drop ticket lists, and the ticket detail when an id is given"""
    cache.invalidate("tickets")
    if ticket_id:
        cache.invalidate_by_key(ticket_detail_key(ticket_id))


def invalidate_user_actions(cache: SmartCache) -> None:
    """Drop ticket lists and stats after a user action"""
    cache.invalidate("tickets")
    cache.invalidate("stats")
