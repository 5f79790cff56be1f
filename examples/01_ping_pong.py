#!/usr/bin/env python3
"""
Example 1: Ping / Pong

This example demonstrates the smallest useful bot: one handler guarded by a
regex filter, replying through the message it received.

The in-memory transport stands in for a network connection, so the example
runs without credentials.
"""

import asyncio
import logging

from message_runtime import InMemoryTransport, Message, MessageRuntime, handler

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@handler("^Ping!$")
async def ping(message: Message) -> None:
    """Answer exact "Ping!" messages."""
    await message.reply("Pong!")


@handler(".*")
async def log_everything(message: Message) -> None:
    """Runs for every message, alongside any other matching handler."""
    logger.info(f"Chat {message.chat_id}: {message.text!r}")


async def main():
    """Run the ping/pong example."""
    transport = InMemoryTransport()
    transport.push_message("Ping!")
    transport.push_message("ping!")  # no reply: the pattern is case sensitive
    transport.close()

    async with MessageRuntime(transport) as runtime:
        runtime.add_handler(ping).add_handler(log_everything)
        summary = await runtime.start_event_loop()

    for sent in transport.session.sent:
        logger.info(f"Sent: {sent.text}")
    logger.info(f"Loop summary: {summary}")


if __name__ == "__main__":
    asyncio.run(main())
