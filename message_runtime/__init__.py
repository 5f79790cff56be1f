# Message Runtime
# An event-driven runtime for messaging bots with typed handler injection

__version__ = "0.1.0"
__license__ = "MIT"

from .client import MessageRuntime
from .config import Config, DispatchConfig, TransportConfig, get_config, set_config
from .dispatcher import Dispatcher
from .events import Event
from .exceptions import (
    MessageRuntimeError,
    ExtractionError,
    DataNotFoundError,
    TypeMismatchError,
    ArgumentParseError,
    ExtractionTransportError,
    HandlerError,
    HandlerSignatureError,
    HandlerTimeoutError,
    HandlerExecutionError,
    RegistrationClosedError,
    LoopStateError,
    TransportError,
    FatalTransportError,
    SessionUnusableError,
)
from .models import (
    DispatchMode,
    EventKind,
    LoopState,
    LoopSummary,
    Message,
    ShutdownPolicy,
    StopReason,
    User,
)
from .state import SharedState
from .transport import InMemorySession, InMemoryTransport, Session, Transport, TransportFactory
from .handlers import (
    # Context types
    InvocationContext,
    # Parameter wrappers
    Args,
    RawArgs,
    Rest,
    Data,
    RepliedMessage,
    # Filters
    Filter,
    RegexFilter,
    PredicateFilter,
    MatchAll,
    # Registration
    handler,
    register_extractor,
)

__all__ = [
    # Main runtime class
    "MessageRuntime",
    "Dispatcher",
    "Config",
    "DispatchConfig",
    "TransportConfig",
    "get_config",
    "set_config",
    # Events and models
    "Event",
    "EventKind",
    "Message",
    "User",
    "LoopState",
    "LoopSummary",
    "StopReason",
    "DispatchMode",
    "ShutdownPolicy",
    # Shared state
    "SharedState",
    # Transport
    "Session",
    "Transport",
    "TransportFactory",
    "InMemorySession",
    "InMemoryTransport",
    # Exceptions
    "MessageRuntimeError",
    "ExtractionError",
    "DataNotFoundError",
    "TypeMismatchError",
    "ArgumentParseError",
    "ExtractionTransportError",
    "HandlerError",
    "HandlerSignatureError",
    "HandlerTimeoutError",
    "HandlerExecutionError",
    "RegistrationClosedError",
    "LoopStateError",
    "TransportError",
    "FatalTransportError",
    "SessionUnusableError",
    # Handlers
    "InvocationContext",
    "Args",
    "RawArgs",
    "Rest",
    "Data",
    "RepliedMessage",
    "Filter",
    "RegexFilter",
    "PredicateFilter",
    "MatchAll",
    "handler",
    "register_extractor",
]
