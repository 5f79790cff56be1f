#!/usr/bin/env python3
"""
Example 2: Command Arguments

This example demonstrates typed command arguments. The text after the command
is parsed into the parameter's type: scalars, lists, enums, or a pydantic
model filled positionally with a trailing Rest field.

A pattern mutator adds the command prefix to every pattern.
"""

import asyncio
import logging
from enum import Enum
from typing import Annotated, List

from pydantic import BaseModel

from message_runtime import Args, InMemoryTransport, Message, MessageRuntime, RawArgs, Rest

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class Mood(Enum):
    HAPPY = "happy"
    GRUMPY = "grumpy"


class RepeatArgs(BaseModel):
    """/repeat <amount> <text...>"""

    amount: int
    text: Annotated[str, Rest()]


async def repeat(message: Message, args: Args[RepeatArgs]) -> None:
    for _ in range(min(args.value.amount, 5)):
        await message.reply(args.value.text)


async def total(message: Message, numbers: Args[List[int]]) -> None:
    await message.reply(f"Sum: {sum(numbers.value)}")


async def mood(message: Message, mood: Args[Mood]) -> None:
    await message.reply("Glad to hear it!" if mood.value is Mood.HAPPY else "Have a coffee.")


async def echo(message: Message, args: RawArgs) -> None:
    await message.reply(" | ".join(args) or "(nothing)")


async def main():
    """Run the arguments example."""
    transport = InMemoryTransport()
    for text in ["/repeat 2 hello  there", "/sum 1 2 3 4", "/mood HAPPY", "/echo a  b c", "/sum x"]:
        transport.push_message(text)
    transport.close()

    async with MessageRuntime(transport) as runtime:
        (
            runtime.pattern_mutator(lambda pattern: f"^/{pattern}\\b")
            .add_handler("repeat", repeat)
            .add_handler("sum", total)
            .add_handler("mood", mood)
            .add_handler("echo", echo)
        )
        summary = await runtime.start_event_loop()

    for sent in transport.session.sent:
        logger.info(f"Sent: {sent.text}")
    # "/sum x" cannot be parsed: it shows up as an extraction failure
    logger.info(f"Extraction failures: {summary.extraction_failures}")


if __name__ == "__main__":
    asyncio.run(main())
