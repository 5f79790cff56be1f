# Handler system for the message runtime
"""Handler registration, filtering and typed argument extraction.

Example:
    from message_runtime.handlers import handler, Data, Args
    from message_runtime.models import Message

    @handler("^/greet")
    async def greet(message: Message, config: Data[BotConfig], args: Args[str]) -> None:
        await message.reply(f"{config.inner.greeting}, {args.value}!")
"""

from .types import (
    # Context types
    InvocationContext,
    # Handler protocols
    Handler,
    AnyHandler,
    Extractor,
)
from .args import Args, RawArgs, Rest, parse_arg
from .extractors import (
    Data,
    RepliedMessage,
    register_extractor,
    get_extractor,
    resolve_extractor,
)
from .filters import (
    Filter,
    RegexFilter,
    PredicateFilter,
    MatchAll,
    AllOf,
    AnyOf,
    Not,
    FilterSpec,
    PatternMutator,
    build_filter,
)
from .entry import HandlerEntry, HandlerParameter
from .registry import HandlerRegistry, Registration, handler, filters_of

__all__ = [
    # Context types
    "InvocationContext",
    # Handler protocols
    "Handler",
    "AnyHandler",
    "Extractor",
    # Parameter wrappers
    "Args",
    "RawArgs",
    "Rest",
    "Data",
    "RepliedMessage",
    "parse_arg",
    # Extractor plugins
    "register_extractor",
    "get_extractor",
    "resolve_extractor",
    # Filters
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
    # Registration
    "HandlerEntry",
    "HandlerParameter",
    "HandlerRegistry",
    "Registration",
    "handler",
    "filters_of",
]
