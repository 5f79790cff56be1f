"""Handler type system for the message runtime.

Defines the context handed to extractors and the callable shapes of handlers
and extractors.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol, TypeVar, Union

from ..events import Event
from ..models import Message, User

if TYPE_CHECKING:
    from ..state import SharedState
    from ..transport import Session

__all__ = [
    "T",
    "InvocationContext",
    "Handler",
    "AnyHandler",
    "Extractor",
]

# ============================================================================
# Generic Type Variables
# ============================================================================

T = TypeVar("T")
"""Type variable for extracted values."""


# ============================================================================
# InvocationContext
# ============================================================================


@dataclass(frozen=True)
class InvocationContext:
    """Everything an extractor may read to produce one handler argument."""

    event: Event
    """The event being dispatched."""

    state: "SharedState"
    """Process-wide shared state (read-only during the loop)."""

    me: Optional[User] = None
    """Account the session is logged in as."""

    error: Optional[BaseException] = None
    """Failure being reported; only set when invoking an error handler."""

    @property
    def session(self) -> "Session":
        return self.event.session

    @property
    def message(self) -> Optional[Message]:
        return self.event.message

    @property
    def text(self) -> str:
        return self.event.text

    def with_error(self, error: BaseException) -> "InvocationContext":
        """Copy of this context carrying an error for an error handler."""
        return InvocationContext(event=self.event, state=self.state, me=self.me, error=error)


# ============================================================================
# Handler Protocols
# ============================================================================


class Handler(Protocol):
    """Protocol for handler functions.

    Handlers take any number of parameters, each annotated with an extractable
    type, in any order. They report application errors by raising; the
    return value is ignored.

    Example:
        @handler("^Ping!$")
        async def ping(message: Message) -> None:
            await message.reply("Pong!")

    Example with shared state and arguments:
        @handler("^/greet")
        async def greet(message: Message, config: Data[BotConfig], args: Args[str]) -> None:
            await message.reply(f"{config.inner.greeting}, {args.value}!")
    """

    __name__: str

    def __call__(self, *args: Any) -> Union[Awaitable[Any], Any]:
        ...


# ============================================================================
# Type Definitions
# ============================================================================

AnyHandler = Callable[..., Any]
"""Type alias for any handler callable."""

Extractor = Callable[[InvocationContext], Union[Awaitable[Any], Any]]
"""Type alias for extractor callables (sync or async)."""
