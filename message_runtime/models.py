"""Pydantic models for the message runtime."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr


# ============================================================================
# Enums
# ============================================================================


class EventKind(str, Enum):
    """Kinds of inbound events delivered by a transport."""

    NEW_MESSAGE = "new_message"
    MESSAGE_EDITED = "message_edited"
    MESSAGE_DELETED = "message_deleted"
    CALLBACK_QUERY = "callback_query"
    OTHER = "other"


class LoopState(str, Enum):
    """States of the dispatcher event loop."""

    IDLE = "idle"
    WAITING_FOR_EVENT = "waiting_for_event"
    DISPATCHING = "dispatching"
    STOPPED = "stopped"


class DispatchMode(str, Enum):
    """How matched invocations of one event are run."""

    CONCURRENT = "concurrent"
    SEQUENTIAL = "sequential"


class ShutdownPolicy(str, Enum):
    """What happens to in-flight invocations when the loop stops."""

    DRAIN = "drain"
    ABANDON = "abandon"


class StopReason(str, Enum):
    """Why a loop ended gracefully."""

    TRANSPORT_CLOSED = "transport_closed"
    STOP_REQUESTED = "stop_requested"


# ============================================================================
# Core Models
# ============================================================================


class User(BaseModel):
    """Account model."""

    id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    is_bot: bool = False
    is_self: bool = False


class Media(BaseModel):
    """Base class for message media."""

    id: int


class Photo(Media):
    """Photo attached to a message."""

    width: int = 0
    height: int = 0


class Document(Media):
    """Document attached to a message."""

    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    size: int = 0


class Sticker(Media):
    """Sticker attached to a message."""

    emoji: Optional[str] = None


class ReplyHeader(BaseModel):
    """Reply metadata of a message."""

    message_id: int
    chat_id: Optional[int] = None


class ForwardHeader(BaseModel):
    """Forward metadata of a message."""

    from_id: Optional[int] = None
    from_name: Optional[str] = None
    date: Optional[datetime] = None


class Message(BaseModel):
    """Message model.

    A message received through a transport can be bound to the session it
    arrived on; bound messages can reply to themselves.
    """

    id: int
    chat_id: int
    sender_id: Optional[int] = None
    text: str = ""
    date: datetime = Field(default_factory=datetime.now)
    media: Optional[Union[Photo, Document, Sticker]] = None
    reply_to: Optional[ReplyHeader] = None
    forward: Optional[ForwardHeader] = None
    outgoing: bool = False
    edit_date: Optional[datetime] = None

    _session: Any = PrivateAttr(default=None)

    def bind(self, session: Any) -> "Message":
        """Return a copy of this message bound to ``session``.

        The binding is a private attribute, and pydantic equality compares
        those too: a bound copy does not compare equal to the unbound original.
        Compare ``id`` and ``chat_id`` to identify a message.
        """
        bound = self.model_copy()
        bound._session = session
        return bound

    @property
    def session(self) -> Any:
        """Session the message is bound to, if any."""
        return self._session

    async def reply(self, text: str) -> "Message":
        """Reply to this message through its session.

        Raises:
            RuntimeError: If the message is not bound to a session
        """
        if self._session is None:
            raise RuntimeError("Message is not bound to a session")
        return await self._session.send_message(self.chat_id, text, reply_to=self.id)


# ============================================================================
# Loop Results
# ============================================================================


class LoopSummary(BaseModel):
    """Counters reported when an event loop ends gracefully."""

    events_received: int = 0
    events_unhandled: int = 0
    invocations_started: int = 0
    invocations_succeeded: int = 0
    invocations_failed: int = 0
    extraction_failures: int = 0
    stop_reason: Optional[StopReason] = None
