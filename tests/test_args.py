"""Tests for command argument parsing."""

from enum import Enum
from typing import Annotated, List, Optional

import pytest
from pydantic import BaseModel

from message_runtime.exceptions import ArgumentParseError, TypeMismatchError
from message_runtime.handlers.args import Args, RawArgs, Rest, parse_arg, parse_model


class Color(Enum):
    RED = "r"
    GREEN = "g"


class RepeatArgs(BaseModel):
    amount: int
    text: Annotated[str, Rest()]


class Point(BaseModel):
    x: int
    y: int = 0


class Note(BaseModel):
    title: str
    body: Annotated[Optional[str], Rest()] = None


class TestRawArgs:
    """Test splitting message text into arguments."""

    def test_parse_ignores_empty_parts(self):
        assert RawArgs.parse("  aaa  bbb c ") == ["aaa", "bbb", "c"]

    def test_parse_empty_text(self):
        assert RawArgs.parse("") == []

    def test_parse_n_one(self):
        args, rest = RawArgs.parse_n("aaa  bbb c d e  f  g", 1)

        assert args == ["aaa"]
        assert rest == " bbb c d e  f  g"

    def test_parse_n_two(self):
        args, rest = RawArgs.parse_n("aaa  bbb c d e  f  g", 2)

        assert args == ["aaa", "bbb"]
        assert rest == "c d e  f  g"

    def test_parse_n_more_than_available(self):
        args, rest = RawArgs.parse_n("aaa  bbb c d e  f  g", 99)

        assert args == ["aaa", "bbb", "c", "d", "e", "f", "g"]
        assert rest == ""

    def test_parse_n_zero(self):
        args, rest = RawArgs.parse_n("aaa bbb", 0)

        assert args == []
        assert rest == "aaa bbb"


class TestParseArg:
    """Test conversion of argument text to typed values."""

    def test_str_is_passed_through(self):
        assert parse_arg(str, " spaced  text ") == " spaced  text "

    def test_int(self):
        assert parse_arg(int, "42") == 42

    def test_float(self):
        assert parse_arg(float, " 1.5 ") == 1.5

    def test_invalid_int_raises(self):
        with pytest.raises(ArgumentParseError) as exc_info:
            parse_arg(int, "abc")

        assert exc_info.value.value == "abc"
        assert isinstance(exc_info.value, TypeMismatchError)

    def test_list_of_ints(self):
        assert parse_arg(List[int], "1  2 3") == [1, 2, 3]

    def test_raw_args(self):
        assert parse_arg(RawArgs, "a b") == ["a", "b"]

    def test_enum_by_name_case_insensitive(self):
        assert parse_arg(Color, "red") is Color.RED
        assert parse_arg(Color, "GREEN") is Color.GREEN

    def test_enum_by_value(self):
        assert parse_arg(Color, "g") is Color.GREEN

    def test_enum_value_is_case_sensitive(self):
        with pytest.raises(ArgumentParseError):
            parse_arg(Color, "G")

    def test_invalid_enum_raises(self):
        with pytest.raises(ArgumentParseError, match="Color"):
            parse_arg(Color, "blue")


class TestParseModel:
    """Test positional filling of argument models."""

    def test_rest_field_takes_remaining_text(self):
        args = parse_model(RepeatArgs, "3 hello  world")

        assert args.amount == 3
        assert args.text == "hello  world"

    def test_missing_rest_text_raises(self):
        with pytest.raises(ArgumentParseError):
            parse_model(RepeatArgs, "3")

    def test_optional_rest_field(self):
        assert parse_model(Note, "todo").body is None
        assert parse_model(Note, "todo buy milk").body == "buy milk"

    def test_default_fields_may_be_omitted(self):
        point = parse_model(Point, "5")

        assert point.x == 5
        assert point.y == 0

    def test_too_few_arguments_raises(self):
        with pytest.raises(ArgumentParseError, match="at least 1"):
            parse_model(Point, "")

    def test_invalid_field_value_raises(self):
        with pytest.raises(ArgumentParseError):
            parse_model(Point, "1 two")

    def test_parse_arg_dispatches_models(self):
        assert parse_arg(Point, "1 2") == Point(x=1, y=2)


class TestArgsWrapper:
    def test_equality_and_repr(self):
        assert Args(3) == Args(3)
        assert Args(3) != Args(4)
        assert repr(Args("x")) == "Args('x')"
