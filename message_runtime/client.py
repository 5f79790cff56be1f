"""Main message runtime client.

Provides the MessageRuntime class: the registration surface for shared data
and handlers, and the owner of the event loop.
"""

import logging
from typing import Any, Optional, Type

from .config import Config
from .dispatcher import Dispatcher
from .exceptions import LoopStateError, RegistrationClosedError
from .handlers.filters import PatternMutator, build_filter
from .handlers.registry import HandlerRegistry, filters_of
from .handlers.types import AnyHandler
from .models import LoopState, LoopSummary
from .state import SharedState
from .transport import Session, Transport, TransportFactory

logger = logging.getLogger(__name__)


class MessageRuntime:
    """Event-driven runtime dispatching messaging events to typed handlers.

    Setup methods return the runtime so they can be chained. Handlers and
    shared data are accepted until the event loop starts.

    Supports three configuration patterns:

    **Direct Python Configuration:**
    ```python
    config = Config(dispatch=DispatchConfig(handler_timeout=10.0))
    runtime = MessageRuntime(transport, config=config)
    ```

    **Environment Variables / .env file:**
    ```bash
    export RUNTIME_DISPATCH_MODE=sequential
    python bot.py
    ```

    **Transport factory:**
    ```python
    runtime = await MessageRuntime.connect(InMemoryTransport.connect)
    ```

    Example:
        from message_runtime import MessageRuntime, handler
        from message_runtime.models import Message

        @handler("^Ping!$")
        async def ping(message: Message) -> None:
            await message.reply("Pong!")

        async with MessageRuntime(transport) as runtime:
            await runtime.add_data(MyConfig()).add_handler(ping).start_event_loop()
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[Config] = None,
        state: Optional[SharedState] = None,
    ):
        """Initialize the runtime.

        Args:
            transport: Connected transport delivering events
            config: Optional configuration. If not provided, uses environment
                   variables or .env file.
            state: Pre-populated shared state (a fresh store otherwise)
        """
        self.config = config or Config()
        self._transport = transport
        self._state = state if state is not None else SharedState()
        self._registry = HandlerRegistry()
        self._mutator: Optional[PatternMutator] = None
        self._dispatcher = Dispatcher(transport, self._registry, self._state, self.config.dispatch)
        self._started = False
        self._disconnected = False

        logging.getLogger("message_runtime").setLevel(
            logging.DEBUG if self.config.debug else self.config.log_level.upper()
        )
        logger.info("MessageRuntime initialized")

    @classmethod
    async def connect(
        cls, factory: TransportFactory, config: Optional[Config] = None
    ) -> "MessageRuntime":
        """Build a runtime on a transport created from the configuration.

        Args:
            factory: Coroutine function receiving ``config.transport``
            config: Optional configuration (environment defaults otherwise)
        """
        config = config or Config()
        transport = await factory(config.transport)
        return cls(transport, config=config)

    async def __aenter__(self) -> "MessageRuntime":
        logger.info("Entering MessageRuntime context")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Stop the loop if running and disconnect the transport."""
        logger.info("Exiting MessageRuntime context")
        await self.stop()

    # ========================================================================
    # Setup
    # ========================================================================

    def add_data(self, value: Any, as_type: Optional[Type] = None) -> "MessageRuntime":
        """Insert a value into the shared state, keyed by its type.

        Raises:
            RegistrationClosedError: If the event loop already started
            TypeMismatchError: If value is not an instance of as_type
        """
        self._state.insert(value, as_type)
        return self

    def pattern_mutator(self, mutator: PatternMutator) -> "MessageRuntime":
        """Rewrite the regex patterns of handlers added from now on.

        Raises:
            RegistrationClosedError: If the event loop already started

        Example:
            runtime.pattern_mutator(lambda p: f"^/{p}").add_handler("start", start)
        """
        if self._started:
            raise RegistrationClosedError("Cannot set a pattern mutator after the event loop started")
        self._mutator = mutator
        return self

    def add_handler(self, *args: Any) -> "MessageRuntime":
        """Register a handler.

        Accepts ``add_handler(func)`` for a function decorated with
        ``@handler``, or ``add_handler(filter, func)`` where filter is a regex
        pattern, a ``Filter`` or a message predicate.

        Raises:
            RegistrationClosedError: If the event loop already started
            HandlerSignatureError: If a parameter cannot be extracted
            ValueError: If no filter is given
        """
        if len(args) == 1:
            func = args[0]
            specs = filters_of(func)
            if specs is None:
                raise ValueError(
                    f"{getattr(func, '__qualname__', func)!r} has no filters; "
                    "decorate it with @handler(...) or pass a filter"
                )
        elif len(args) == 2:
            spec, func = args
            specs = (spec,)
        else:
            raise TypeError("add_handler() takes a handler, or a filter and a handler")

        self._registry.add(build_filter(*specs, mutator=self._mutator), func)
        return self

    def fallback_handler(self, func: AnyHandler) -> "MessageRuntime":
        """Set the handler run for events no filter matched."""
        self._registry.set_fallback(func)
        return self

    def error_handler(self, func: AnyHandler) -> "MessageRuntime":
        """Set the handler run with the error of a failed invocation."""
        self._registry.set_error_handler(func)
        return self

    # ========================================================================
    # Event loop
    # ========================================================================

    async def start_event_loop(self) -> LoopSummary:
        """Run the event loop until the transport closes or stop is requested.

        Returns:
            Counters of the run

        Raises:
            LoopStateError: If the loop was already started
            FatalTransportError: If the transport failed unrecoverably
        """
        if self._started:
            raise LoopStateError("Event loop already started")
        self._started = True
        return await self._dispatcher.run()

    def request_stop(self) -> None:
        """Ask a running loop to stop; in-flight invocations follow the shutdown policy."""
        self._dispatcher.request_stop()

    async def stop(self) -> None:
        """Request a stop and disconnect the transport."""
        self.request_stop()
        if self._disconnected:
            return
        self._disconnected = True
        await self._transport.disconnect()
        logger.info("Transport disconnected")

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def state(self) -> SharedState:
        return self._state

    @property
    def registry(self) -> HandlerRegistry:
        return self._registry

    @property
    def session(self) -> Session:
        return self._transport.session

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def loop_state(self) -> LoopState:
        return self._dispatcher.state

    def list_handlers(self) -> list:
        """Names of the registered handlers, in registration order."""
        return self._registry.list_handlers()
