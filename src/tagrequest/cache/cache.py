"""A TTL cache with tag-based bulk invalidation.

Entries are keyed by the effective request path (path plus query string).
Each entry stores the resolved response value, the tags declared by the
request that produced it, and an absolute expiry instant in milliseconds.

Expiry is enforced two ways:

* **Lazily** -- :meth:`TaggedCache.get` deletes a stale entry instead of
  returning it.
* **Periodically** -- when a flush interval is configured, the first
  :meth:`TaggedCache.set` made inside a running event loop schedules
  :meth:`TaggedCache.flush` with ``loop.call_later``. The timer re-arms
  itself, never keeps the process alive, and is cancelled by
  :meth:`TaggedCache.set_flush_interval` and :meth:`TaggedCache.close`.

All operations are synchronous dict manipulations; they rely on running on
a single event loop rather than on locking.

See Also:
    :class:`~tagrequest.models.CacheConfig` -- the Pydantic model that
    controls ``flush_interval_ms`` and ``default_ttl_ms``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from tagrequest.cache.tags import Tag, TagLike, as_tags, tags_intersect


def _now_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class CacheEntry:
    """A stored value with its tags and absolute expiry (milliseconds)."""

    value: Any
    tags: Optional[tuple[Tag, ...]]
    expires_at: float


class TaggedCache:
    """In-memory cache with per-entry TTL and tag invalidation.

    Args:
        flush_interval: Milliseconds between background sweeps of expired
            entries. ``None`` or ``0`` disables sweeping; expired entries
            are then only dropped on read.
        clock: Callable returning the current time in milliseconds.
            Defaults to a monotonic clock.

    Example::

        cache = TaggedCache(flush_interval=60000)
        cache.set("/users?page=1", [{"id": 1}], tags=["users"], ttl=15000)
        cache.get("/users?page=1")        # -> [{"id": 1}]
        cache.delete_by_tags(["users"])   # -> 1
        cache.get("/users?page=1")        # -> None
    """

    def __init__(
        self,
        flush_interval: Optional[int] = None,
        clock: Callable[[], float] = _now_ms,
    ) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock
        self._flush_interval: Optional[int] = None
        self._flush_handle: Optional[asyncio.TimerHandle] = None
        self._flush_loop: Optional[asyncio.AbstractEventLoop] = None
        self.set_flush_interval(flush_interval)

    @property
    def flush_interval(self) -> Optional[int]:
        """The configured sweep interval in milliseconds, or ``None``."""
        return self._flush_interval

    # ------------------------------------------------------------------ #
    # Entry operations
    # ------------------------------------------------------------------ #

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value stored under *key*, or *default*.

        An expired entry is deleted as a side effect.
        """
        entry = self._entries.get(key)
        if entry is None:
            return default
        if entry.expires_at > self._clock():
            return entry.value
        del self._entries[key]
        return default

    def set(
        self,
        key: str,
        value: Any,
        tags: Optional[Iterable[TagLike]] = None,
        ttl: float = 0,
    ) -> None:
        """Store *value* under *key* for *ttl* milliseconds, replacing any previous entry.

        Args:
            key: Cache key (the effective request path).
            value: Value to store.
            tags: Tags used by :meth:`delete_by_tags`. ``None`` or empty
                makes the entry immune to tag invalidation.
            ttl: Time to live in milliseconds.
        """
        self._entries[key] = CacheEntry(value, as_tags(tags), self._clock() + ttl)

        if self._flush_interval and not self._timer_active():
            self._schedule_flush()

    def delete(self, key: str) -> None:
        """Remove *key* if present."""
        self._entries.pop(key, None)

    def delete_all(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def delete_by_tags(self, tags: Iterable[TagLike]) -> int:
        """Remove every entry whose tags match at least one of *tags*.

        Returns:
            The number of removed entries.
        """
        query = as_tags(tags) or ()
        stale = [
            key
            for key, entry in self._entries.items()
            if entry.tags and tags_intersect(query, entry.tags)
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def flush(self) -> int:
        """Remove every expired entry.

        Returns:
            The number of removed entries.
        """
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in stale:
            del self._entries[key]
        return len(stale)

    # ------------------------------------------------------------------ #
    # Sweep timer lifecycle
    # ------------------------------------------------------------------ #

    def set_flush_interval(self, flush_interval: Optional[int]) -> None:
        """Cancel the running sweep timer and record a new interval.

        No new timer is started here; the next :meth:`set` starts one.
        """
        self._cancel_timer()
        self._flush_interval = flush_interval or None

    def close(self) -> None:
        """Stop the background sweep. Stored entries are kept."""
        self._cancel_timer()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size`` (stored entries, expired or not),
            ``flush_interval`` (ms or ``None``) and ``timer_active`` (bool).
        """
        return {
            "size": len(self._entries),
            "flush_interval": self._flush_interval,
            "timer_active": self._timer_active(),
        }

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _timer_active(self) -> bool:
        if self._flush_handle is None or self._flush_loop is None:
            return False
        return not self._flush_handle.cancelled() and not self._flush_loop.is_closed()

    def _schedule_flush(self) -> None:
        """Arm the sweep timer on the running loop; a no-op outside of one."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        assert self._flush_interval is not None
        self._flush_loop = loop
        self._flush_handle = loop.call_later(self._flush_interval / 1000, self._on_flush_timer)

    def _on_flush_timer(self) -> None:
        self.flush()
        if self._flush_interval and self._flush_loop is not None:
            self._flush_handle = self._flush_loop.call_later(
                self._flush_interval / 1000, self._on_flush_timer
            )

    def _cancel_timer(self) -> None:
        if self._flush_handle is not None:
            self._flush_handle.cancel()
        self._flush_handle = None
        self._flush_loop = None
