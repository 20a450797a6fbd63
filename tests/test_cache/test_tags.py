"""Tests for literal and pattern cache tags."""

from __future__ import annotations

import itertools
import re

import pytest

from tagrequest.cache.tags import LiteralTag, PatternTag, as_tag, as_tags, tags_intersect, tags_match


SAMPLE_TAGS = [
    LiteralTag("users"),
    LiteralTag("users:1"),
    LiteralTag("orders"),
    PatternTag(re.compile(r"^users")),
    PatternTag(re.compile(r"ord")),
    PatternTag(re.compile(r"^users")),
]


class TestAsTag:
    def test_string_becomes_literal(self) -> None:
        assert as_tag("users") == LiteralTag("users")

    def test_pattern_becomes_pattern_tag(self) -> None:
        pattern = re.compile("^users")
        assert as_tag(pattern) == PatternTag(pattern)

    def test_existing_tag_returned_as_is(self) -> None:
        tag = LiteralTag("x")
        assert as_tag(tag) is tag

    def test_as_tags_keeps_none(self) -> None:
        assert as_tags(None) is None

    def test_as_tags_converts_each(self) -> None:
        assert as_tags(["a", "b"]) == (LiteralTag("a"), LiteralTag("b"))

    def test_pattern_str_is_source(self) -> None:
        assert str(PatternTag(re.compile(r"^u\d+"))) == r"^u\d+"


class TestTagsMatch:
    def test_equal_literals(self) -> None:
        assert tags_match(LiteralTag("a"), LiteralTag("a"))

    def test_different_literals(self) -> None:
        assert not tags_match(LiteralTag("a"), LiteralTag("b"))

    def test_pattern_matches_literal(self) -> None:
        assert tags_match(PatternTag(re.compile("^user")), LiteralTag("users"))

    def test_literal_matches_pattern(self) -> None:
        assert tags_match(LiteralTag("users"), PatternTag(re.compile("^user")))

    def test_pattern_not_matching(self) -> None:
        assert not tags_match(PatternTag(re.compile("^orders$")), LiteralTag("users"))

    def test_equal_patterns(self) -> None:
        assert tags_match(PatternTag(re.compile("x+")), PatternTag(re.compile("x+")))

    @pytest.mark.parametrize(("a", "b"), list(itertools.product(SAMPLE_TAGS, repeat=2)))
    def test_symmetric(self, a, b) -> None:
        assert tags_match(a, b) == tags_match(b, a)


class TestTagsIntersect:
    def test_any_pair_matching(self) -> None:
        assert tags_intersect([LiteralTag("a"), LiteralTag("b")], [LiteralTag("b")])

    def test_no_pair_matching(self) -> None:
        assert not tags_intersect([LiteralTag("a")], [LiteralTag("b"), LiteralTag("c")])

    def test_empty_never_intersects(self) -> None:
        assert not tags_intersect([], [LiteralTag("a")])
