"""Test helpers and utilities for message runtime tests."""

import asyncio
import time
from typing import Any, Callable, List, Optional

from message_runtime.client import MessageRuntime
from message_runtime.config import Config, DispatchConfig
from message_runtime.events import Event
from message_runtime.handlers.types import InvocationContext
from message_runtime.models import DispatchMode, EventKind, Message, User
from message_runtime.state import SharedState
from message_runtime.transport import InMemorySession, InMemoryTransport


# Data Factories
class TestDataFactory:
    """Factory for creating test data objects."""

    __test__ = False

    @staticmethod
    def create_message(text: str = "hello", chat_id: int = 100, **fields: Any) -> Message:
        """Create a test message."""
        fields.setdefault("id", 1)
        fields.setdefault("sender_id", 200)
        return Message(chat_id=chat_id, text=text, **fields)

    @staticmethod
    def create_event(
        text: Optional[str] = "hello",
        kind: EventKind = EventKind.NEW_MESSAGE,
        session: Optional[InMemorySession] = None,
        **fields: Any,
    ) -> Event:
        """Create a test event; ``text=None`` gives an event without a message."""
        message = TestDataFactory.create_message(text, **fields) if text is not None else None
        return Event(kind=kind, session=session or InMemorySession(), message=message)

    @staticmethod
    def create_context(
        text: Optional[str] = "hello",
        state: Optional[SharedState] = None,
        me: Optional[User] = None,
        error: Optional[BaseException] = None,
        **fields: Any,
    ) -> InvocationContext:
        """Create an invocation context around a test event."""
        return InvocationContext(
            event=TestDataFactory.create_event(text, **fields),
            state=state if state is not None else SharedState(),
            me=me,
            error=error,
        )


def sequential_config(**dispatch: Any) -> Config:
    """Config running matched handlers one after another."""
    dispatch.setdefault("mode", DispatchMode.SEQUENTIAL)
    return Config(dispatch=DispatchConfig(**dispatch))


def concurrent_config(**dispatch: Any) -> Config:
    """Config running matched handlers as concurrent tasks."""
    dispatch.setdefault("mode", DispatchMode.CONCURRENT)
    return Config(dispatch=DispatchConfig(**dispatch))


# Recording handlers
class CallRecorder:
    """Records handler calls in the order they happened."""

    def __init__(self):
        self.calls: List[tuple] = []

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def handler(self, name: str, fail: Optional[BaseException] = None) -> Callable:
        """Build a handler taking the message, recording it, optionally raising."""

        async def record(message: Message) -> None:
            self.calls.append((name, message.text))
            if fail is not None:
                raise fail

        record.__qualname__ = name
        return record


# Runtime Test Helpers
async def run_messages(
    runtime: MessageRuntime, transport: InMemoryTransport, *texts: str, timeout: float = 5.0
):
    """Queue messages, close the stream and run the loop to completion."""
    for text in texts:
        transport.push_message(text)
    transport.close()
    return await asyncio.wait_for(runtime.start_event_loop(), timeout=timeout)


async def wait_for_condition(
    condition: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01
) -> bool:
    """Wait for a condition to become true."""
    start_time = time.time()
    while time.time() - start_time < timeout:
        if condition():
            return True
        await asyncio.sleep(interval)
    return False


async def request_stop_later(runtime: MessageRuntime, delay: float = 0.05) -> None:
    """Request a stop after ``delay`` seconds."""
    await asyncio.sleep(delay)
    runtime.request_stop()

