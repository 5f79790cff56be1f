"""Dispatcher: pulls events from the transport and runs matching handlers.

Dispatch policy: for every event, each registered filter is evaluated in
registration order and ALL matching handlers are invoked (fan-out). When none
match, the fallback handler runs if one is set. Invocations start in
registration order; with the concurrent mode their completion order is not
defined.
"""

import asyncio
import logging
from typing import Coroutine, Optional, Set

from .config import DispatchConfig
from .events import Event
from .exceptions import (
    ExtractionError,
    FatalTransportError,
    HandlerExecutionError,
    HandlerTimeoutError,
    LoopStateError,
)
from .handlers.entry import HandlerEntry
from .handlers.filters import Filter
from .handlers.registry import HandlerRegistry
from .handlers.types import InvocationContext
from .models import DispatchMode, LoopState, LoopSummary, ShutdownPolicy, StopReason, User
from .state import SharedState
from .transport import Transport

logger = logging.getLogger(__name__)


class Dispatcher:
    """Event loop state machine.

    ``Idle -> WaitingForEvent -> Dispatching -> WaitingForEvent -> ... -> Stopped``

    Handler failures (extraction errors, raised exceptions, timeouts) are
    logged, passed to the error handler and otherwise contained. Only fatal
    transport errors stop the loop; they are raised from ``run``.
    """

    def __init__(
        self,
        transport: Transport,
        registry: HandlerRegistry,
        state: SharedState,
        config: Optional[DispatchConfig] = None,
    ):
        """Initialize the dispatcher.

        Args:
            transport: Source of events and owner of the session handle
            registry: Handlers to dispatch to (frozen when the loop starts)
            state: Shared state handed to extractors (frozen when the loop starts)
            config: Dispatch behavior; defaults read from the environment
        """
        self._transport = transport
        self._registry = registry
        self._state = state
        self._config = config or DispatchConfig()

        self._loop_state = LoopState.IDLE
        self._stop_requested = asyncio.Event()
        self._tasks: Set[asyncio.Task] = set()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._fatal_error: Optional[FatalTransportError] = None
        self._me: Optional[User] = None
        self.summary = LoopSummary()

    @property
    def state(self) -> LoopState:
        return self._loop_state

    @property
    def in_flight(self) -> int:
        """Number of invocations currently running as tasks."""
        return sum(1 for task in self._tasks if not task.done())

    def request_stop(self) -> None:
        """Ask the loop to stop after the event currently being dispatched."""
        self._stop_requested.set()

    # ========================================================================
    # Loop
    # ========================================================================

    async def run(self) -> LoopSummary:
        """Run until the transport closes or a stop is requested.

        Returns:
            Counters of the run

        Raises:
            LoopStateError: If the dispatcher already ran
            FatalTransportError: If the transport failed unrecoverably
        """
        if self._loop_state is not LoopState.IDLE:
            raise LoopStateError(f"Event loop cannot start from state '{self._loop_state.value}'")

        self._registry.freeze()
        self._state.freeze()
        if self._config.max_concurrency:
            self._semaphore = asyncio.Semaphore(self._config.max_concurrency)

        logger.info(
            f"Starting event loop with {len(self._registry)} handlers "
            f"(mode={self._config.mode.value})"
        )
        try:
            self._me = await self._fetch_me()
            await self._loop()
        except FatalTransportError as e:
            logger.error(f"Event loop stopped by fatal transport error: {e}")
            await self._shutdown()
            self._loop_state = LoopState.STOPPED
            raise
        except asyncio.CancelledError:
            await self._cancel(self._pending())
            self._loop_state = LoopState.STOPPED
            raise

        await self._shutdown()
        self._loop_state = LoopState.STOPPED
        if self._fatal_error is not None:
            logger.error(f"Fatal transport error while draining handlers: {self._fatal_error}")
            raise self._fatal_error

        logger.info(
            f"Event loop stopped ({self.summary.stop_reason.value if self.summary.stop_reason else 'unknown'}): "
            f"{self.summary.events_received} events, {self.summary.invocations_started} invocations"
        )
        return self.summary.model_copy()

    async def _loop(self) -> None:
        while True:
            self._loop_state = LoopState.WAITING_FOR_EVENT
            event = await self._next_event()
            self._raise_if_fatal()
            if event is None:
                return

            self._loop_state = LoopState.DISPATCHING
            self.summary.events_received += 1
            await self.dispatch(event)
            self._raise_if_fatal()

    async def _fetch_me(self) -> Optional[User]:
        try:
            return await self._transport.session.get_me()
        except FatalTransportError:
            raise
        except Exception as e:
            raise FatalTransportError(f"Could not fetch the logged-in user: {e}") from e

    async def _next_event(self) -> Optional[Event]:
        """Wait for the next event or a stop request, whichever comes first."""
        if self._stop_requested.is_set():
            self.summary.stop_reason = StopReason.STOP_REQUESTED
            return None

        next_task = asyncio.ensure_future(self._transport.next_event())
        stop_task = asyncio.ensure_future(self._stop_requested.wait())
        try:
            done, _ = await asyncio.wait(
                {next_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            next_task.cancel()
            raise
        finally:
            stop_task.cancel()

        if next_task not in done:
            next_task.cancel()
            await asyncio.gather(next_task, return_exceptions=True)
            self.summary.stop_reason = StopReason.STOP_REQUESTED
            return None

        try:
            event = next_task.result()
        except FatalTransportError:
            raise
        except Exception as e:
            raise FatalTransportError(f"Transport failed while waiting for events: {e}") from e

        if event is None:
            logger.info("Transport closed the event stream")
            self.summary.stop_reason = StopReason.TRANSPORT_CLOSED
        return event

    def _raise_if_fatal(self) -> None:
        if self._fatal_error is not None:
            raise self._fatal_error

    # ========================================================================
    # Dispatch
    # ========================================================================

    async def dispatch(self, event: Event) -> None:
        """Evaluate filters for one event and start the matching invocations."""
        context = InvocationContext(event=event, state=self._state, me=self._me)
        matches = self._registry.match(event)

        if matches:
            logger.debug(f"{event.describe()} matched {len(matches)} handlers")
            invocations = [(r.entry, r.filter) for r in matches]
        else:
            self.summary.events_unhandled += 1
            if self._registry.fallback is None:
                logger.debug(f"Unhandled event: {event.describe()}")
                return
            invocations = [(self._registry.fallback, None)]

        for entry, filter in invocations:
            if self._fatal_error is not None:
                break
            invocation = self._invoke(entry, filter, context)
            if self._config.mode is DispatchMode.SEQUENTIAL:
                await invocation
            else:
                self._spawn(invocation, entry.name)

    def _spawn(self, invocation: Coroutine, name: str) -> None:
        task = asyncio.create_task(invocation, name=f"handler:{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _invoke(
        self, entry: HandlerEntry, filter: Optional[Filter], context: InvocationContext
    ) -> None:
        """Run one invocation, containing every non-fatal failure."""
        self.summary.invocations_started += 1
        event = context.event
        try:
            if self._semaphore is not None:
                async with self._semaphore:
                    await self._call(entry, context)
            else:
                await self._call(entry, context)
        except ExtractionError as e:
            self.summary.extraction_failures += 1
            level = logging.WARNING if filter is not None else logging.DEBUG
            source = repr(filter) if filter is not None else "fallback"
            logger.log(
                level,
                f"Extraction failed for handler {entry.name} ({source}) on {event.describe()}: {e}",
            )
            await self._report(e, context)
        except FatalTransportError as e:
            self.summary.invocations_failed += 1
            logger.error(f"Handler {entry.name} hit a fatal transport error: {e}")
            self._record_fatal(e)
        except HandlerTimeoutError as e:
            self.summary.invocations_failed += 1
            logger.error(f"{e} on {event.describe()}")
            await self._report(e, context)
        except HandlerExecutionError as e:
            self.summary.invocations_failed += 1
            logger.error(
                f"Handler {entry.name} failed on {event.describe()}: {e.error}", exc_info=e.error
            )
            await self._report(e, context)
        except Exception as e:
            self.summary.invocations_failed += 1
            logger.error(
                f"Handler {entry.name} failed on {event.describe()}: {e}", exc_info=True
            )
            error = HandlerExecutionError(entry.name, e)
            error.__cause__ = e
            await self._report(error, context)
        else:
            self.summary.invocations_succeeded += 1

    async def _call(self, entry: HandlerEntry, context: InvocationContext) -> None:
        timeout = self._config.handler_timeout
        if timeout is None:
            await self._run(entry, context)
            return
        # Body errors arrive wrapped, so a TimeoutError here is the deadline.
        try:
            await asyncio.wait_for(self._run(entry, context), timeout=timeout)
        except asyncio.TimeoutError:
            raise HandlerTimeoutError(f"Handler {entry.name} timed out after {timeout}s")

    async def _run(self, entry: HandlerEntry, context: InvocationContext) -> None:
        """Extract the arguments, then call the body.

        Raises:
            ExtractionError: If an argument cannot be produced; the body is not called
            FatalTransportError: If the body hit an unrecoverable transport failure
            HandlerExecutionError: For anything else the body raised
        """
        args, kwargs = await entry.extract(context)
        try:
            await entry.call(args, kwargs)
        except FatalTransportError:
            raise
        except Exception as e:
            raise HandlerExecutionError(entry.name, e) from e

    async def _report(self, error: BaseException, context: InvocationContext) -> None:
        """Pass a contained failure to the error handler, if one is set."""
        error_handler = self._registry.error_handler
        if error_handler is None:
            return
        try:
            await self._run(error_handler, context.with_error(error))
        except ExtractionError as e:
            logger.debug(f"Error handler {error_handler.name} skipped: {e}")
        except FatalTransportError as e:
            logger.error(f"Error handler {error_handler.name} hit a fatal transport error: {e}")
            self._record_fatal(e)
        except HandlerExecutionError as e:
            logger.error(f"Error handler {error_handler.name} failed: {e.error}")
        except Exception as e:
            logger.error(f"Error handler {error_handler.name} failed: {e}")

    def _record_fatal(self, error: FatalTransportError) -> None:
        if self._fatal_error is None:
            self._fatal_error = error
        self.request_stop()

    # ========================================================================
    # Shutdown
    # ========================================================================

    def _pending(self) -> Set[asyncio.Task]:
        return {task for task in self._tasks if not task.done()}

    async def _shutdown(self) -> None:
        pending = self._pending()
        if not pending:
            return

        if self._config.shutdown_policy is ShutdownPolicy.ABANDON:
            logger.info(f"Abandoning {len(pending)} in-flight invocations")
            await self._cancel(pending)
            return

        timeout = self._config.drain_timeout
        logger.info(f"Draining {len(pending)} in-flight invocations")
        _, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            logger.warning(
                f"{len(not_done)} invocations still running after {timeout}s, cancelling"
            )
            await self._cancel(not_done)

    async def _cancel(self, tasks: Set[asyncio.Task]) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
