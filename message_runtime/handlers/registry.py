"""Handler registry: ordered (filter, entry point) registrations."""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..events import Event
from ..exceptions import RegistrationClosedError
from .entry import HandlerEntry
from .filters import Filter, FilterSpec
from .types import AnyHandler

logger = logging.getLogger(__name__)

_FILTERS_ATTR = "__handler_filters__"


def handler(*filters: FilterSpec) -> Callable[[AnyHandler], AnyHandler]:
    """Declare a function as a handler guarded by ``filters``.

    The function is returned unchanged; the filters are attached to it and
    picked up by ``MessageRuntime.add_handler``. Patterns are validated when
    the handler is added.

    Example:
        @handler("^Ping!$")
        async def ping(message: Message) -> None:
            await message.reply("Pong!")

        @handler("^/save", lambda m: m.media is not None)
        async def save(message: Message, media: Media) -> None:
            ...
    """
    if not filters:
        raise ValueError("handler() needs at least one filter")

    def decorator(func: AnyHandler) -> AnyHandler:
        setattr(func, _FILTERS_ATTR, filters)
        return func

    return decorator


def filters_of(func: AnyHandler) -> Optional[Tuple[FilterSpec, ...]]:
    """Filters attached to a function by ``@handler``, if any."""
    return getattr(func, _FILTERS_ATTR, None)


@dataclass(frozen=True)
class Registration:
    """One registered handler: a filter paired with its entry point."""

    filter: Filter
    entry: HandlerEntry
    index: int

    @property
    def name(self) -> str:
        return self.entry.name


class HandlerRegistry:
    """Ordered collection of handler registrations.

    Populated during setup; frozen when the event loop starts. Order is
    registration order and is the order filters are evaluated in. The same
    handler registered twice is two independent registrations.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._registrations: List[Registration] = []
        self._fallback: Optional[HandlerEntry] = None
        self._error_handler: Optional[HandlerEntry] = None
        self._frozen = False

    def _check_open(self) -> None:
        if self._frozen:
            raise RegistrationClosedError("Handlers cannot be registered after the event loop started")

    def add(self, filter: Filter, func: AnyHandler) -> Registration:
        """Register a handler behind a filter.

        Raises:
            RegistrationClosedError: If the registry is frozen
            HandlerSignatureError: If the handler's parameters cannot be extracted
        """
        self._check_open()
        registration = Registration(
            filter=filter, entry=HandlerEntry(func), index=len(self._registrations)
        )
        self._registrations.append(registration)
        logger.info(f"Registered handler: {registration.name} ({filter!r})")
        return registration

    def set_fallback(self, func: AnyHandler) -> HandlerEntry:
        """Set the handler run for events no filter matches."""
        self._check_open()
        self._fallback = HandlerEntry(func)
        logger.info(f"Registered fallback handler: {self._fallback.name}")
        return self._fallback

    def set_error_handler(self, func: AnyHandler) -> HandlerEntry:
        """Set the handler run with the error of a failed invocation."""
        self._check_open()
        self._error_handler = HandlerEntry(func)
        logger.info(f"Registered error handler: {self._error_handler.name}")
        return self._error_handler

    @property
    def fallback(self) -> Optional[HandlerEntry]:
        return self._fallback

    @property
    def error_handler(self) -> Optional[HandlerEntry]:
        return self._error_handler

    @property
    def registrations(self) -> Tuple[Registration, ...]:
        """Immutable, ordered view of the registrations."""
        return tuple(self._registrations)

    def match(self, event: Event) -> List[Registration]:
        """Registrations whose filter accepts ``event``, in registration order.

        A filter that raises is logged and treated as not matching.
        """
        matched = []
        for registration in self._registrations:
            try:
                if registration.filter.matches(event):
                    matched.append(registration)
            except Exception as e:
                logger.warning(
                    f"Filter {registration.filter!r} of handler {registration.name} "
                    f"raised on {event.describe()}: {e}"
                )
        return matched

    def freeze(self) -> None:
        """Forbid further registrations."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def list_handlers(self) -> List[str]:
        """Names of the registered handlers, in order."""
        return [r.name for r in self._registrations]

    def __len__(self) -> int:
        return len(self._registrations)
