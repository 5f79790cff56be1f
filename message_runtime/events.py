"""Inbound event snapshot shared by the transport and the dispatcher."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from .models import EventKind, Message

if TYPE_CHECKING:
    from .transport import Session


@dataclass(frozen=True)
class Event:
    """Immutable snapshot of one inbound occurrence from the transport.

    Shared read-only with every handler invocation the event triggers.
    """

    kind: EventKind
    """What kind of occurrence this is."""

    session: "Session"
    """Session handle the event arrived on."""

    message: Optional[Message] = None
    """Message carried by the event, for message kinds."""

    raw: Any = None
    """Transport-specific payload the event was built from."""

    received_at: datetime = field(default_factory=datetime.now)
    """When the runtime received the event."""

    @property
    def text(self) -> str:
        """Message text, or an empty string for events without a message."""
        return self.message.text if self.message is not None else ""

    def describe(self) -> str:
        """Short description for log lines."""
        if self.message is None:
            return self.kind.value
        return f"{self.kind.value} {self.message.id} in chat {self.message.chat_id}"
