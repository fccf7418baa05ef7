from __future__ import annotations

import asyncio
import functools
import logging
import time
from typing import Any, Awaitable, Callable, NamedTuple

from cachetools import TLRUCache

from .metrics import cache_lookups_total

log = logging.getLogger(__name__)

ONE_HOUR_IN_SECONDS = 60 * 60


class CacheEntry(NamedTuple):
    value: Any
    expires_in: float


def _time_to_use(key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.expires_in


class KeyValueCache:
    """In-memory memoizer for async lookups with a per-entry time-to-live.

    Entries live in a ``TLRUCache``: an expired entry is never returned, and
    every write also frees whatever else has expired. Concurrent misses on
    the same key share a single computation, which runs as its own task so
    an abandoned caller does not stop it from filling the cache.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = 10_000,
    ) -> None:
        self._entries: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=clock)
        self._pending: dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        self._entries.expire()
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    @staticmethod
    def _default_key(func: Callable[..., Any], args: tuple) -> str:
        name = getattr(func, "__qualname__", repr(func))
        return f"{name}:{args!r}"

    async def wrap(
        self,
        func: Callable[..., Awaitable[Any]],
        *args: Any,
        expires_in: float,
        key: str | None = None,
    ) -> Any:
        """Return the cached result of ``func(*args)`` or compute and store it."""
        if expires_in <= 0:
            raise ValueError("expires_in must be positive")
        if key is None:
            key = self._default_key(func, args)

        entry = self._entries.get(key)
        if entry is not None:
            cache_lookups_total.labels(result="hit").inc()
            log.debug("Cache hit for %s", key)
            return entry.value

        task = self._pending.get(key)
        if task is None:
            cache_lookups_total.labels(result="miss").inc()
            task = asyncio.ensure_future(func(*args))
            self._pending[key] = task
            task.add_done_callback(functools.partial(self._store, key, expires_in))
        else:
            cache_lookups_total.labels(result="coalesced").inc()
            log.debug("Joining in-flight lookup for %s", key)

        return await asyncio.shield(task)

    def _store(self, key: str, expires_in: float, task: asyncio.Future) -> None:
        self._pending.pop(key, None)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.debug("Not caching %s: %s", key, exc)
            return
        self._entries[key] = CacheEntry(task.result(), expires_in)
