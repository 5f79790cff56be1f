"""Extractors: how handler parameters are produced from an event.

An extractor is a callable taking an ``InvocationContext`` and returning the
value for one handler parameter, sync or async. Extractors report failure by
raising an ``ExtractionError`` subclass.

Parameter annotations are resolved to extractors once, at registration time,
by ``resolve_extractor``. New parameter types plug in either through
``register_extractor`` or by defining a ``from_context`` classmethod:

    @register_extractor(Chat)
    async def extract_chat(context: InvocationContext) -> Chat:
        return await context.session.get_chat(context.message.chat_id)

    class Locale:
        @classmethod
        def from_context(cls, context: InvocationContext) -> "Locale":
            ...
"""

import inspect
import logging
import types
from typing import Any, Callable, Dict, Generic, Optional, Type, Union, get_args, get_origin

from ..events import Event
from ..exceptions import (
    DataNotFoundError,
    ExtractionError,
    ExtractionTransportError,
    FatalTransportError,
    HandlerSignatureError,
    TransportError,
)
from ..models import (
    Document,
    EventKind,
    ForwardHeader,
    Media,
    Message,
    Photo,
    ReplyHeader,
    Sticker,
    User,
)
from ..state import SharedState
from ..transport import Session
from .args import Args, RawArgs, parse_arg
from .types import Extractor, InvocationContext, T

logger = logging.getLogger(__name__)

__all__ = [
    "Data",
    "RepliedMessage",
    "register_extractor",
    "get_extractor",
    "resolve_extractor",
    "run_extractor",
]

_extractors: Dict[Any, Extractor] = {}


class Data(Generic[T]):
    """Handler parameter wrapper: the shared state value of type ``T``."""

    __slots__ = ("_value",)

    def __init__(self, value: T):
        self._value = value

    @property
    def inner(self) -> T:
        return self._value

    def __repr__(self) -> str:
        return f"Data({self._value!r})"


class RepliedMessage(Message):
    """The message the event's message replies to, fetched through the session."""

    pass


# ============================================================================
# Registration
# ============================================================================


def register_extractor(target: Any) -> Callable[[Extractor], Extractor]:
    """Register an extractor function for a parameter type.

    Registering a type again replaces its extractor.
    """

    def decorator(extractor: Extractor) -> Extractor:
        _extractors[target] = extractor
        logger.debug(f"Registered extractor for {getattr(target, '__name__', target)}")
        return extractor

    return decorator


def get_extractor(target: Any) -> Optional[Extractor]:
    """Get the registered extractor for a type, if any."""
    return _extractors.get(target)


async def run_extractor(extractor: Extractor, context: InvocationContext) -> Any:
    """Run a sync or async extractor.

    Transport failures other than fatal ones are reported as extraction errors.
    """
    try:
        value = extractor(context)
        if inspect.isawaitable(value):
            value = await value
        return value
    except (ExtractionError, FatalTransportError):
        raise
    except TransportError as e:
        raise ExtractionTransportError(f"Transport error while extracting: {e}") from e


# ============================================================================
# Resolution
# ============================================================================


def resolve_extractor(annotation: Any) -> Extractor:
    """Build the extractor for a parameter annotation.

    Raises:
        HandlerSignatureError: If no extractor applies to the annotation
    """
    origin = get_origin(annotation)

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) != len(get_args(annotation)) and len(members) == 1:
            return _optional(resolve_extractor(members[0]))
        raise HandlerSignatureError(f"Unsupported union parameter type: {annotation!r}")

    if origin is Data:
        (target,) = get_args(annotation)
        return _state_lookup(target, wrap=True)

    if origin is Args:
        (target,) = get_args(annotation)
        return _args_extractor(target)

    if annotation in _extractors:
        return _extractors[annotation]

    if inspect.isclass(annotation):
        from_context = getattr(annotation, "from_context", None)
        if from_context is not None and inspect.ismethod(from_context):
            return from_context
        if issubclass(annotation, BaseException):
            return _error_extractor(annotation)
        if annotation.__module__ != "builtins":
            return _state_lookup(annotation, wrap=False)

    raise HandlerSignatureError(f"No extractor for parameter type {annotation!r}")


def _optional(inner: Extractor) -> Extractor:
    async def extract(context: InvocationContext) -> Any:
        try:
            return await run_extractor(inner, context)
        except DataNotFoundError:
            return None

    return extract


def _state_lookup(target: Type[Any], wrap: bool) -> Extractor:
    def extract(context: InvocationContext) -> Any:
        value = context.state.require(target)
        return Data(value) if wrap else value

    return extract


def _args_extractor(target: Any) -> Extractor:
    def extract(context: InvocationContext) -> Args:
        text = _require_message(context).text
        index = text.find(" ")
        if index < 0:
            raise DataNotFoundError("Message has no arguments")
        return Args(parse_arg(target, text[index + 1 :]))

    return extract


def _error_extractor(target: Type[BaseException]) -> Extractor:
    def extract(context: InvocationContext) -> BaseException:
        if context.error is None or not isinstance(context.error, target):
            raise DataNotFoundError(f"No error of type {target.__name__} to handle")
        return context.error

    return extract


def _require_message(context: InvocationContext) -> Message:
    if context.message is None:
        raise DataNotFoundError(f"Event of kind {context.event.kind.value} has no message")
    return context.message


def _media_of(target: Type[Media]) -> Extractor:
    def extract(context: InvocationContext) -> Media:
        media = _require_message(context).media
        if media is None or not isinstance(media, target):
            raise DataNotFoundError(f"Message has no {target.__name__.lower()}")
        return media

    return extract


# ============================================================================
# Built-in extractors
# ============================================================================


@register_extractor(Event)
def extract_event(context: InvocationContext) -> Event:
    return context.event


@register_extractor(InvocationContext)
def extract_context(context: InvocationContext) -> InvocationContext:
    return context


@register_extractor(EventKind)
def extract_kind(context: InvocationContext) -> EventKind:
    return context.event.kind


@register_extractor(Session)
def extract_session(context: InvocationContext) -> Session:
    return context.session


@register_extractor(SharedState)
def extract_state(context: InvocationContext) -> SharedState:
    return context.state


@register_extractor(Message)
def extract_message(context: InvocationContext) -> Message:
    message = _require_message(context)
    return message if message.session is not None else message.bind(context.session)


@register_extractor(str)
def extract_text(context: InvocationContext) -> str:
    return _require_message(context).text


@register_extractor(User)
def extract_me(context: InvocationContext) -> User:
    if context.me is None:
        raise DataNotFoundError("Logged-in user is unknown")
    return context.me


@register_extractor(ReplyHeader)
def extract_reply_header(context: InvocationContext) -> ReplyHeader:
    header = _require_message(context).reply_to
    if header is None:
        raise DataNotFoundError("Message is not a reply")
    return header


@register_extractor(ForwardHeader)
def extract_forward_header(context: InvocationContext) -> ForwardHeader:
    header = _require_message(context).forward
    if header is None:
        raise DataNotFoundError("Message is not forwarded")
    return header


@register_extractor(RepliedMessage)
async def extract_replied_message(context: InvocationContext) -> RepliedMessage:
    message = _require_message(context)
    if message.reply_to is None:
        raise DataNotFoundError("Message is not a reply")
    chat_id = message.reply_to.chat_id or message.chat_id
    replied = await context.session.get_message(chat_id, message.reply_to.message_id)
    if replied is None:
        raise DataNotFoundError(f"Replied message {message.reply_to.message_id} not found")
    return RepliedMessage(**dict(replied)).bind(context.session)


@register_extractor(RawArgs)
def extract_raw_args(context: InvocationContext) -> RawArgs:
    text = _require_message(context).text
    index = text.find(" ")
    if index < 0:
        return RawArgs()
    return RawArgs.parse(text[index:])


register_extractor(Media)(_media_of(Media))
register_extractor(Photo)(_media_of(Photo))
register_extractor(Document)(_media_of(Document))
register_extractor(Sticker)(_media_of(Sticker))
