"""Custom exceptions for the message runtime."""

from typing import Optional


# Base exception
class MessageRuntimeError(Exception):
    """Base exception for all message runtime errors."""

    pass


# Extraction errors
class ExtractionError(MessageRuntimeError):
    """Raised when a handler argument cannot be produced from an event.

    The dispatcher fills in ``handler`` and ``parameter`` before the error is
    reported, so log lines point at the failing parameter.
    """

    def __init__(
        self,
        message: str,
        handler: Optional[str] = None,
        parameter: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.handler = handler
        self.parameter = parameter

    def __str__(self) -> str:
        if self.handler and self.parameter:
            return f"{self.handler}({self.parameter}): {self.message}"
        if self.parameter:
            return f"{self.parameter}: {self.message}"
        return self.message


class DataNotFoundError(ExtractionError):
    """Raised when required data is absent from the event or shared state."""

    pass


class TypeMismatchError(ExtractionError):
    """Raised when available data does not have the requested type."""

    pass


class ArgumentParseError(TypeMismatchError):
    """Raised when command arguments cannot be parsed into the requested type."""

    def __init__(self, value: str, message: Optional[str] = None):
        super().__init__(message or f"Error parsing {value!r}")
        self.value = value


class ExtractionTransportError(ExtractionError):
    """Raised when an extractor fails while fetching auxiliary data."""

    pass


# Handler-related errors
class HandlerError(MessageRuntimeError):
    """Base class for handler-related errors."""

    pass


class HandlerSignatureError(HandlerError):
    """Raised at registration when a handler parameter cannot be extracted."""

    pass


class HandlerTimeoutError(HandlerError):
    """Raised when a handler invocation exceeds the configured timeout."""

    pass


class HandlerExecutionError(HandlerError):
    """Raised when a handler body fails; the original error is the cause."""

    def __init__(self, handler: str, error: BaseException):
        super().__init__(f"Handler '{handler}' failed: {error}")
        self.handler = handler
        self.error = error


# Lifecycle errors
class RegistrationClosedError(MessageRuntimeError):
    """Raised when setup-phase registration is attempted after the loop started."""

    pass


class LoopStateError(MessageRuntimeError):
    """Raised when the event loop is started in an invalid state."""

    pass


# Transport errors
class TransportError(MessageRuntimeError):
    """Base class for transport-level errors."""

    pass


class FatalTransportError(TransportError):
    """Raised when the connection is lost and cannot be recovered."""

    pass


class SessionUnusableError(FatalTransportError):
    """Raised when outbound I/O shows the whole session is unusable."""

    pass
