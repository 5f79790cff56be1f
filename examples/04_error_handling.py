#!/usr/bin/env python3
"""
Example 4: Error Handling

This example demonstrates failure isolation. A failing handler does not stop
its siblings or later events; the error handler sees every contained
failure, and the fallback handler answers messages nothing else matched.

A fatal transport failure is the only thing that ends the loop with an error.
"""

import asyncio
import logging

from message_runtime import (
    FatalTransportError,
    HandlerExecutionError,
    InMemoryTransport,
    Message,
    MessageRuntime,
    handler,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@handler("^/divide")
async def divide(message: Message) -> None:
    _, a, b = message.text.split()
    await message.reply(str(int(a) / int(b)))


@handler("^/divide")
async def audit(message: Message) -> None:
    logger.info(f"Audit: {message.text}")


async def on_handler_error(error: HandlerExecutionError, message: Message) -> None:
    await message.reply(f"Sorry, that failed: {error.error}")


async def fallback(message: Message) -> None:
    await message.reply("Unknown command")


async def main():
    """Run the error handling example."""
    transport = InMemoryTransport()
    for text in ["/divide 6 3", "/divide 1 0", "hello?"]:
        transport.push_message(text)
    transport.fail("connection reset by peer")

    runtime = (
        MessageRuntime(transport)
        .add_handler(divide)
        .add_handler(audit)
        .error_handler(on_handler_error)
        .fallback_handler(fallback)
    )
    try:
        await runtime.start_event_loop()
    except FatalTransportError as e:
        logger.error(f"Loop ended: {e}")
    finally:
        await runtime.stop()

    for sent in transport.session.sent:
        logger.info(f"Sent: {sent.text}")


if __name__ == "__main__":
    asyncio.run(main())
