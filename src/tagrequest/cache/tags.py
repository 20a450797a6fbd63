"""Cache tags: exact labels or regular-expression patterns.

A tag is either a :class:`LiteralTag` (exact string) or a
:class:`PatternTag` (compiled regular expression). Requests declare tags via
:meth:`~tagrequest.request.Request.cache_tags` and the cache stores them next
to each entry; invalidation then matches the two sides with
:func:`tags_match`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union


@dataclass(frozen=True)
class LiteralTag:
    """An exact tag label."""

    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class PatternTag:
    """A tag that matches any other tag whose string form it searches successfully."""

    pattern: re.Pattern[str]

    def __str__(self) -> str:
        return self.pattern.pattern

    def matches(self, other: Tag) -> bool:
        return self.pattern.search(str(other)) is not None


Tag = Union[LiteralTag, PatternTag]
TagLike = Union[str, re.Pattern, LiteralTag, PatternTag]


def as_tag(value: TagLike) -> Tag:
    """Coerce a string, compiled pattern or existing tag into a :data:`Tag`."""
    if isinstance(value, (LiteralTag, PatternTag)):
        return value
    if isinstance(value, re.Pattern):
        return PatternTag(value)
    return LiteralTag(str(value))


def as_tags(values: Optional[Iterable[TagLike]]) -> Optional[tuple[Tag, ...]]:
    """Coerce an iterable of tag-likes, preserving ``None`` (no tags declared)."""
    if values is None:
        return None
    return tuple(as_tag(value) for value in values)


def tags_match(a: Tag, b: Tag) -> bool:
    """Return ``True`` if tag *a* matches tag *b*.

    Two tags match when they are equal, or when either one is a pattern
    that finds the other's string form. The relation is symmetric.
    """
    if a == b:
        return True
    if isinstance(a, PatternTag) and a.matches(b):
        return True
    if isinstance(b, PatternTag) and b.matches(a):
        return True
    return False


def tags_intersect(a: Iterable[Tag], b: Iterable[Tag]) -> bool:
    """Return ``True`` if any tag of *a* matches any tag of *b*."""
    b = tuple(b)
    return any(tags_match(a_tag, b_tag) for a_tag in a for b_tag in b)
