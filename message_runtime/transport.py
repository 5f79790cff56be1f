"""Transport boundary and an in-memory reference transport.

A transport delivers inbound events and exposes a session handle for outbound
operations. Network clients live outside this package; they only need to
satisfy the ``Transport`` and ``Session`` protocols.
"""

import asyncio
import itertools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple, Union

from .config import TransportConfig
from .exceptions import TransportError
from .events import Event
from .models import EventKind, Message, ReplyHeader, User

logger = logging.getLogger(__name__)


# ============================================================================
# Protocols
# ============================================================================


class Session(Protocol):
    """Shareable session handle used for outbound operations.

    Implementations must tolerate concurrent use from many invocations.
    """

    async def send_message(
        self, chat_id: int, text: str, reply_to: Optional[int] = None
    ) -> Message:
        ...

    async def get_me(self) -> User:
        ...

    async def get_message(self, chat_id: int, message_id: int) -> Optional[Message]:
        ...


class Transport(Protocol):
    """Source of inbound events.

    ``next_event`` suspends until an event arrives. It returns None when the
    connection ended gracefully and raises when it failed.
    """

    session: Session

    async def next_event(self) -> Optional[Event]:
        ...

    async def disconnect(self) -> None:
        ...


TransportFactory = Callable[[TransportConfig], Awaitable[Transport]]
"""Coroutine function building a connected transport from its config."""


# ============================================================================
# In-memory implementation
# ============================================================================


_CLOSED = object()


class InMemorySession:
    """Session keeping sent messages in memory.

    Outbound calls are serialized through a lock, the way a single network
    connection would serialize writes.
    """

    def __init__(self, me: Optional[User] = None):
        """Initialize the session.

        Args:
            me: Account the session is logged in as
        """
        self.me = me or User(id=1, username="runtime", is_self=True)
        self.sent: List[Message] = []
        self.fail_with: Optional[BaseException] = None
        self._messages: Dict[Tuple[int, int], Message] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    def next_id(self) -> int:
        return next(self._ids)

    def remember(self, message: Message) -> None:
        """Make a message retrievable through ``get_message``."""
        self._messages[(message.chat_id, message.id)] = message

    async def send_message(
        self, chat_id: int, text: str, reply_to: Optional[int] = None
    ) -> Message:
        """Send a text message to a chat.

        Raises:
            TransportError: If ``fail_with`` is set
        """
        async with self._lock:
            if self.fail_with is not None:
                raise self.fail_with

            message = Message(
                id=self.next_id(),
                chat_id=chat_id,
                sender_id=self.me.id,
                text=text,
                outgoing=True,
                reply_to=ReplyHeader(message_id=reply_to, chat_id=chat_id) if reply_to else None,
            )
            bound = message.bind(self)
            self.sent.append(bound)
            self.remember(message)
            logger.debug(f"Sent message {message.id} to chat {chat_id}")
            return bound

    async def get_me(self) -> User:
        return self.me

    async def get_message(self, chat_id: int, message_id: int) -> Optional[Message]:
        async with self._lock:
            if self.fail_with is not None:
                raise self.fail_with
            message = self._messages.get((chat_id, message_id))
            return message.bind(self) if message is not None else None


class InMemoryTransport:
    """Queue-backed transport for tests and local development.

    Example:
        transport = InMemoryTransport()
        transport.push_message("Ping!")
        transport.close()

        summary = await MessageRuntime(transport).add_handler(ping).start_event_loop()
    """

    def __init__(self, session: Optional[InMemorySession] = None):
        self.session = session or InMemorySession()
        self.disconnected = False
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()

    @classmethod
    async def connect(cls, config: TransportConfig) -> "InMemoryTransport":
        """Transport factory; the config is accepted for interface parity."""
        logger.info(f"Connecting in-memory transport (api_id={config.api_id})")
        return cls()

    def push(self, event: Event) -> None:
        """Queue an event for delivery."""
        if event.message is not None:
            self.session.remember(event.message)
        self._queue.put_nowait(event)

    def push_message(
        self,
        text: str,
        chat_id: int = 100,
        sender_id: Optional[int] = 200,
        kind: EventKind = EventKind.NEW_MESSAGE,
        **fields: Any,
    ) -> Event:
        """Build a message event and queue it.

        Returns:
            The queued event
        """
        message = Message(
            id=self.session.next_id(),
            chat_id=chat_id,
            sender_id=sender_id,
            text=text,
            **fields,
        )
        event = Event(kind=kind, session=self.session, message=message, raw=message)
        self.push(event)
        return event

    def close(self) -> None:
        """End the event stream gracefully once queued events are consumed."""
        self._queue.put_nowait(_CLOSED)

    def fail(self, error: Union[BaseException, str] = "connection lost") -> None:
        """End the event stream with a failure once queued events are consumed."""
        if isinstance(error, str):
            error = TransportError(error)
        self._queue.put_nowait(error)

    async def next_event(self) -> Optional[Event]:
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        if isinstance(item, BaseException):
            raise item
        return item

    async def disconnect(self) -> None:
        self.disconnected = True
        logger.info("In-memory transport disconnected")
