#!/usr/bin/env python3
"""
Example 3: Shared Data

This example demonstrates process-wide shared state. Values are inserted
before the loop starts and injected into handlers by type, either wrapped in
Data[T] or as the plain type.

Configuration is read from the environment (or a .env file); set
RUNTIME_DISPATCH_MODE=sequential to run matched handlers one after another.
"""

import asyncio
import logging
from typing import Optional

from pydantic import BaseModel

from message_runtime import (
    Args,
    Config,
    Data,
    InMemoryTransport,
    Message,
    MessageRuntime,
    TransportConfig,
    User,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class BotSettings(BaseModel):
    """Settings shared by every handler."""

    greeting: str = "Hello"


class Glossary:
    """Read-only lookup table shared by every handler."""

    def __init__(self, entries: dict):
        self.entries = entries

    def lookup(self, term: str) -> Optional[str]:
        return self.entries.get(term.lower())


class Unused(BaseModel):
    """Never inserted: handlers asking for it get None or are skipped."""


async def greet(message: Message, settings: Data[BotSettings], name: Args[str]) -> None:
    await message.reply(f"{settings.inner.greeting}, {name.value}!")


async def define(message: Message, glossary: Glossary, term: Args[str]) -> None:
    definition = glossary.lookup(term.value)
    await message.reply(definition or f"No entry for {term.value!r}")


async def whoami(message: Message, me: User, extra: Optional[Unused] = None) -> None:
    await message.reply(f"I am @{me.username} (extra={extra})")


async def main():
    """Run the shared data example."""
    transport = InMemoryTransport()
    for text in ["/greet world", "/define Extractor", "/define nothing", "/whoami"]:
        transport.push_message(text)
    transport.close()

    async def factory(transport_config: TransportConfig) -> InMemoryTransport:
        return transport

    runtime = await MessageRuntime.connect(factory, Config())
    async with runtime:
        (
            runtime.add_data(BotSettings(greeting="Welcome"))
            .add_data(Glossary({"extractor": "Produces one handler argument from an event"}))
            .add_handler("^/greet", greet)
            .add_handler("^/define", define)
            .add_handler("^/whoami$", whoami)
        )
        await runtime.start_event_loop()

    for sent in transport.session.sent:
        logger.info(f"Sent: {sent.text}")


if __name__ == "__main__":
    asyncio.run(main())
