"""Filters deciding which handlers apply to an event.

Filters are pure predicates over immutable event data: they never consult
shared state and never perform I/O. Each filter also declares the event kinds
it applies to; events of other kinds never match.
"""

import re
from abc import ABC, abstractmethod
from typing import Callable, FrozenSet, Iterable, Optional, Pattern, Union

from ..events import Event
from ..models import EventKind, Message

__all__ = [
    "Filter",
    "RegexFilter",
    "PredicateFilter",
    "MatchAll",
    "AllOf",
    "AnyOf",
    "Not",
    "FilterSpec",
    "PatternMutator",
    "build_filter",
]

DEFAULT_KINDS: FrozenSet[EventKind] = frozenset({EventKind.NEW_MESSAGE})

PatternMutator = Callable[[str], str]
"""Rewrites a regex pattern before it is compiled (e.g. to add a command prefix)."""


class Filter(ABC):
    """Predicate over an incoming event."""

    def __init__(self, kinds: Optional[Iterable[EventKind]] = None):
        self.kinds: FrozenSet[EventKind] = frozenset(kinds) if kinds is not None else DEFAULT_KINDS

    def matches(self, event: Event) -> bool:
        """Whether a handler guarded by this filter should run for ``event``."""
        if event.kind not in self.kinds:
            return False
        return self.check(event)

    @abstractmethod
    def check(self, event: Event) -> bool:
        """Evaluate the predicate for an event of an accepted kind."""

    def __and__(self, other: "Filter") -> "Filter":
        return AllOf(self, other)

    def __or__(self, other: "Filter") -> "Filter":
        return AnyOf(self, other)

    def __invert__(self) -> "Filter":
        return Not(self)


class RegexFilter(Filter):
    """Matches messages whose text contains a match of ``pattern``."""

    def __init__(
        self,
        pattern: Union[str, Pattern[str]],
        kinds: Optional[Iterable[EventKind]] = None,
    ):
        super().__init__(kinds)
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def check(self, event: Event) -> bool:
        return event.message is not None and self.pattern.search(event.message.text) is not None

    def __repr__(self) -> str:
        return f"RegexFilter({self.pattern.pattern!r})"


class PredicateFilter(Filter):
    """Matches messages for which ``func(message)`` is true."""

    def __init__(
        self,
        func: Callable[[Message], bool],
        kinds: Optional[Iterable[EventKind]] = None,
    ):
        super().__init__(kinds)
        self.func = func

    def check(self, event: Event) -> bool:
        return event.message is not None and bool(self.func(event.message))

    def __repr__(self) -> str:
        return f"PredicateFilter({getattr(self.func, '__name__', self.func)!r})"


class MatchAll(Filter):
    """Matches every event of the accepted kinds."""

    def check(self, event: Event) -> bool:
        return True

    def __repr__(self) -> str:
        return "MatchAll()"


class AllOf(Filter):
    """Matches when every child filter matches."""

    def __init__(self, *filters: Filter):
        kinds = frozenset.intersection(*(f.kinds for f in filters)) if filters else DEFAULT_KINDS
        super().__init__(kinds)
        self.filters = filters

    def check(self, event: Event) -> bool:
        return all(f.matches(event) for f in self.filters)

    def __repr__(self) -> str:
        return " & ".join(repr(f) for f in self.filters)


class AnyOf(Filter):
    """Matches when at least one child filter matches."""

    def __init__(self, *filters: Filter):
        kinds = frozenset().union(*(f.kinds for f in filters)) if filters else DEFAULT_KINDS
        super().__init__(kinds)
        self.filters = filters

    def check(self, event: Event) -> bool:
        return any(f.matches(event) for f in self.filters)

    def __repr__(self) -> str:
        return "(" + " | ".join(repr(f) for f in self.filters) + ")"


class Not(Filter):
    """Matches events of the child's kinds that the child rejects."""

    def __init__(self, inner: Filter):
        super().__init__(inner.kinds)
        self.inner = inner

    def check(self, event: Event) -> bool:
        return not self.inner.check(event)

    def __repr__(self) -> str:
        return f"~{self.inner!r}"


FilterSpec = Union[str, Pattern[str], Filter, Callable[[Message], bool]]
"""A filter, a regex pattern, or a message predicate."""


def build_filter(*specs: FilterSpec, mutator: Optional[PatternMutator] = None) -> Filter:
    """Turn filter specs into one filter.

    Strings are regex patterns (passed through ``mutator`` first), callables
    are message predicates, and several specs must all match.

    Raises:
        ValueError: If no spec is given
        TypeError: If a spec is neither a filter, a pattern nor a callable
        re.error: If a pattern is not a valid regex
    """
    if not specs:
        raise ValueError("At least one filter is required")

    filters = []
    for spec in specs:
        if isinstance(spec, Filter):
            filters.append(spec)
        elif isinstance(spec, str):
            filters.append(RegexFilter(mutator(spec) if mutator else spec))
        elif isinstance(spec, re.Pattern):
            filters.append(RegexFilter(spec))
        elif callable(spec):
            filters.append(PredicateFilter(spec))
        else:
            raise TypeError(f"Unsupported filter: {spec!r}")

    return filters[0] if len(filters) == 1 else AllOf(*filters)
