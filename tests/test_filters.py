"""Tests for event filters."""

import re

import pytest

from message_runtime.handlers.filters import (
    AllOf,
    AnyOf,
    MatchAll,
    Not,
    PredicateFilter,
    RegexFilter,
    build_filter,
)
from message_runtime.models import EventKind, Photo

from helpers import TestDataFactory


def event(text="hello", **fields):
    return TestDataFactory.create_event(text, **fields)


class TestRegexFilter:
    """Test regex matching against the message text."""

    def test_anchored_pattern(self):
        ping = RegexFilter("^Ping!$")

        assert ping.matches(event("Ping!"))
        assert not ping.matches(event("ping!"))
        assert not ping.matches(event("Ping! Ping!"))

    def test_pattern_is_searched(self):
        assert RegexFilter("world").matches(event("hello world"))

    def test_only_new_messages_by_default(self):
        ping = RegexFilter("^Ping!$")

        assert not ping.matches(event("Ping!", kind=EventKind.MESSAGE_EDITED))

    def test_custom_kinds(self):
        ping = RegexFilter("^Ping!$", kinds=[EventKind.MESSAGE_EDITED])

        assert ping.matches(event("Ping!", kind=EventKind.MESSAGE_EDITED))
        assert not ping.matches(event("Ping!"))

    def test_event_without_message(self):
        assert not RegexFilter(".*", kinds=[EventKind.OTHER]).matches(
            event(None, kind=EventKind.OTHER)
        )

    def test_invalid_pattern(self):
        with pytest.raises(re.error):
            RegexFilter("(unclosed")


class TestCombinators:
    """Test combining filters."""

    def test_predicate(self):
        has_photo = PredicateFilter(lambda m: isinstance(m.media, Photo))

        assert has_photo.matches(event("pic", media=Photo(id=1)))
        assert not has_photo.matches(event("text"))

    def test_and_or_not(self):
        command = RegexFilter("^/")
        short = PredicateFilter(lambda m: len(m.text) < 6)

        assert (command & short).matches(event("/go"))
        assert not (command & short).matches(event("/longer"))
        assert (command | short).matches(event("hi"))
        assert (~command).matches(event("hi"))
        assert not (~command).matches(event("/go"))

    def test_not_keeps_kind_restriction(self):
        assert not Not(RegexFilter("^/")).matches(event("hi", kind=EventKind.CALLBACK_QUERY))

    def test_kinds_of_combinations(self):
        new = MatchAll()
        edited = MatchAll(kinds=[EventKind.MESSAGE_EDITED])

        assert AnyOf(new, edited).kinds == {EventKind.NEW_MESSAGE, EventKind.MESSAGE_EDITED}
        assert AllOf(new, edited).kinds == frozenset()
        assert AnyOf(new, edited).matches(event("x", kind=EventKind.MESSAGE_EDITED))


class TestBuildFilter:
    """Test turning filter specs into filters."""

    def test_string_becomes_regex(self):
        built = build_filter("^Ping!$")

        assert isinstance(built, RegexFilter)
        assert built.matches(event("Ping!"))

    def test_compiled_pattern(self):
        assert build_filter(re.compile("ping", re.IGNORECASE)).matches(event("PING"))

    def test_callable_becomes_predicate(self):
        assert isinstance(build_filter(lambda m: True), PredicateFilter)

    def test_filter_is_kept(self):
        match_all = MatchAll()

        assert build_filter(match_all) is match_all

    def test_several_specs_must_all_match(self):
        built = build_filter("^/save", lambda m: m.media is not None)

        assert isinstance(built, AllOf)
        assert built.matches(event("/save", media=Photo(id=1)))
        assert not built.matches(event("/save"))

    def test_pattern_mutator(self):
        built = build_filter("start", mutator=lambda p: f"^/{p}$")

        assert built.matches(event("/start"))
        assert not built.matches(event("start"))

    def test_mutator_ignores_non_string_specs(self):
        built = build_filter(re.compile("^start$"), mutator=lambda p: f"^/{p}$")

        assert built.matches(event("start"))

    def test_no_spec(self):
        with pytest.raises(ValueError):
            build_filter()

    def test_unsupported_spec(self):
        with pytest.raises(TypeError):
            build_filter(42)
