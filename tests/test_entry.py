"""Tests for handler entry points and their extraction pipelines."""

from typing import Optional

import pytest
from pydantic import BaseModel

from message_runtime.exceptions import (
    DataNotFoundError,
    ExtractionError,
    HandlerSignatureError,
)
from message_runtime.handlers.args import Args
from message_runtime.handlers.entry import HandlerEntry
from message_runtime.handlers.extractors import Data
from message_runtime.models import Message, ReplyHeader
from message_runtime.state import SharedState

from helpers import TestDataFactory


class BotConfig(BaseModel):
    greeting: str = "Hello"


class TestPipelineConstruction:
    """Test building the extractor pipeline from a signature."""

    def test_parameters_follow_declaration_order(self):
        async def greet(args: Args[str], message: Message, config: Data[BotConfig]) -> None:
            pass

        entry = HandlerEntry(greet)

        assert [p.name for p in entry.parameters] == ["args", "message", "config"]
        assert entry.name.endswith("greet")

    def test_zero_parameters(self):
        async def tick() -> None:
            pass

        assert HandlerEntry(tick).parameters == []

    def test_unannotated_parameter_rejected(self):
        async def bad(message) -> None:
            pass

        with pytest.raises(HandlerSignatureError, match="message"):
            HandlerEntry(bad)

    def test_variadic_parameter_rejected(self):
        async def bad(*messages: Message) -> None:
            pass

        with pytest.raises(HandlerSignatureError, match="variadic"):
            HandlerEntry(bad)

    def test_unextractable_type_rejected(self):
        async def bad(count: int) -> None:
            pass

        with pytest.raises(HandlerSignatureError, match="count"):
            HandlerEntry(bad)

    def test_not_callable(self):
        with pytest.raises(HandlerSignatureError):
            HandlerEntry("not a function")

    def test_custom_name(self):
        async def tick() -> None:
            pass

        assert HandlerEntry(tick, name="ticker").name == "ticker"


class TestInvocation:
    """Test extracting arguments and calling the function."""

    @pytest.mark.asyncio
    async def test_invoke_async_handler(self):
        state = SharedState()
        state.insert(BotConfig(greeting="Hi"))
        received = []

        async def greet(message: Message, config: Data[BotConfig], args: Args[str]) -> None:
            received.append(f"{config.inner.greeting}, {args.value}!")

        await HandlerEntry(greet).invoke(TestDataFactory.create_context("/greet Bob", state=state))

        assert received == ["Hi, Bob!"]

    @pytest.mark.asyncio
    async def test_invoke_sync_handler(self):
        received = []

        def echo(text: str) -> str:
            received.append(text)
            return text.upper()

        result = await HandlerEntry(echo).invoke(TestDataFactory.create_context("hi"))

        assert result == "HI"
        assert received == ["hi"]

    @pytest.mark.asyncio
    async def test_keyword_only_parameters(self):
        received = {}

        async def handle(*, text: str, message: Message) -> None:
            received.update(text=text, id=message.id)

        await HandlerEntry(handle).invoke(TestDataFactory.create_context("kw", id=9))

        assert received == {"text": "kw", "id": 9}

    @pytest.mark.asyncio
    async def test_extraction_failure_skips_body(self):
        called = []

        async def greet(message: Message, config: Data[BotConfig]) -> None:
            called.append(message)

        with pytest.raises(DataNotFoundError) as exc_info:
            await HandlerEntry(greet).invoke(TestDataFactory.create_context("hi"))

        assert called == []
        assert exc_info.value.parameter == "config"
        assert exc_info.value.handler.endswith("greet")
        assert "config" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_extraction_stops_at_first_failure(self):
        async def handle(reply: ReplyHeader, args: Args[int]) -> None:
            pass

        with pytest.raises(ExtractionError) as exc_info:
            await HandlerEntry(handle).invoke(TestDataFactory.create_context("/x nope"))

        assert exc_info.value.parameter == "reply"

    @pytest.mark.asyncio
    async def test_default_used_when_data_missing(self):
        received = []

        async def handle(text: str, config: Optional[BotConfig] = None, count: Args[int] = Args(1)) -> None:
            received.append((text, config, count.value))

        await HandlerEntry(handle).invoke(TestDataFactory.create_context("/count"))

        assert received == [("/count", None, 1)]

    @pytest.mark.asyncio
    async def test_application_error_propagates(self):
        async def boom(message: Message) -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await HandlerEntry(boom).invoke(TestDataFactory.create_context("x"))

    @pytest.mark.asyncio
    async def test_call_uses_given_arguments(self):
        received = []
        message = TestDataFactory.create_message("ignored")

        def handle(text: str, *, message: Message) -> str:
            received.append((text, message.id))
            return text.upper()

        result = await HandlerEntry(handle).call(["hi"], {"message": message})

        assert result == "HI"
        assert received == [("hi", 1)]

    def test_repr(self):
        async def greet(message: Message, text: str) -> None:
            pass

        assert repr(HandlerEntry(greet, name="greet")) == "HandlerEntry(greet(message, text))"
