"""In-memory response caching for tagrequest.

This package provides :class:`TaggedCache`, the store shared by every
:class:`~tagrequest.request.Request` built from one
:class:`~tagrequest.client.Client`. Entries are keyed by the effective
request path, expire after a per-entry TTL, and can be invalidated in bulk
by literal or pattern tags (see :mod:`tagrequest.cache.tags`).

The cache is controlled by the ``cache`` section of
:class:`~tagrequest.models.ClientConfig` (:class:`~tagrequest.models.CacheConfig`).
"""

from tagrequest.cache.cache import CacheEntry, TaggedCache
from tagrequest.cache.tags import LiteralTag, PatternTag, Tag, as_tag, tags_match

__all__ = [
    "CacheEntry",
    "LiteralTag",
    "PatternTag",
    "Tag",
    "TaggedCache",
    "as_tag",
    "tags_match",
]
