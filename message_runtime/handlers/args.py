"""Command argument parsing.

Turns the text following a command (``/repeat 3 hello world``) into typed
values. Scalars go through pydantic validation; pydantic models are filled
positionally, with an optional ``Rest`` field collecting the remaining text.

Example:
    class RepeatArgs(BaseModel):
        amount: int
        text: Annotated[str, Rest()]

    @handler("^/repeat")
    async def repeat(message: Message, args: Args[RepeatArgs]) -> None:
        for _ in range(args.value.amount):
            await message.reply(args.value.text)
"""

import inspect
from enum import Enum
from typing import Any, Generic, List, Tuple, Type, TypeVar, get_args, get_origin

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..exceptions import ArgumentParseError

A = TypeVar("A")


class Rest:
    """Marks the last field of an argument model as taking the remaining text."""

    def __repr__(self) -> str:
        return "Rest()"


class RawArgs(list):
    """Space separated arguments, empty parts ignored."""

    @classmethod
    def parse(cls, text: str) -> "RawArgs":
        return cls(part.strip() for part in text.split(" ") if part.strip())

    @classmethod
    def parse_n(cls, text: str, count: int) -> Tuple["RawArgs", str]:
        """Parse up to ``count`` arguments and return them with the rest of the text.

        The rest starts right after the separator that ended the last parsed
        argument, so repeated spaces after it are preserved.
        """
        if count == 0:
            return cls(), text

        args: List[str] = []
        current: List[str] = []
        for index, char in enumerate(text):
            if char == " ":
                if current:
                    args.append("".join(current).strip())
                    current = []
                    if len(args) == count:
                        return cls(args), text[index + 1 :]
                continue
            current.append(char)

        if current:
            args.append("".join(current))
        return cls(args), ""


class Args(Generic[A]):
    """Handler parameter wrapper: the message arguments parsed as ``A``."""

    __slots__ = ("value",)

    def __init__(self, value: A):
        self.value = value

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Args) and other.value == self.value

    def __repr__(self) -> str:
        return f"Args({self.value!r})"


def parse_arg(annotation: Any, text: str) -> Any:
    """Parse ``text`` into a value of type ``annotation``.

    Raises:
        ArgumentParseError: If the text cannot be converted
    """
    if annotation is str or annotation is Any:
        return text
    if annotation is RawArgs:
        return RawArgs.parse(text)
    if get_origin(annotation) in (list, List):
        (item_type,) = get_args(annotation) or (str,)
        return [parse_arg(item_type, part) for part in RawArgs.parse(text)]
    if inspect.isclass(annotation) and issubclass(annotation, Enum):
        return _parse_enum(annotation, text)
    if inspect.isclass(annotation) and issubclass(annotation, BaseModel):
        return parse_model(annotation, text)

    try:
        return TypeAdapter(annotation).validate_python(text.strip())
    except ValidationError as e:
        raise ArgumentParseError(text, f"Error parsing {text!r}: {e.errors()[0]['msg']}") from e


def parse_model(model: Type[BaseModel], text: str) -> BaseModel:
    """Fill a pydantic model's fields positionally from ``text``."""
    fields = list(model.model_fields.items())
    rest_field = None
    if fields and any(isinstance(m, Rest) or m is Rest for m in fields[-1][1].metadata):
        rest_field = fields.pop()

    args, rest = RawArgs.parse_n(text, len(fields))
    required = sum(1 for _, info in fields if info.is_required())
    if len(args) < required:
        raise ArgumentParseError(
            text, f"Expected at least {required} arguments for {model.__name__}, got {len(args)}"
        )

    values = {}
    for (name, info), raw in zip(fields, args):
        values[name] = parse_arg(info.annotation, raw)
    if rest_field is not None:
        name, info = rest_field
        if rest.strip():
            values[name] = parse_arg(info.annotation, rest)
        elif info.is_required():
            raise ArgumentParseError(text, f"Missing remaining text for {model.__name__}.{name}")

    try:
        return model.model_validate(values)
    except ValidationError as e:
        raise ArgumentParseError(text, f"Error parsing {text!r} as {model.__name__}: {e}") from e


def _parse_enum(enum_type: Type[Enum], text: str) -> Enum:
    """Match a member by name ignoring case, then by exact value.

    Name matching is always case-insensitive, so enums used as arguments must
    not have members whose names differ only in case.
    """
    value = text.strip()
    for member in enum_type:
        if member.name.lower() == value.lower():
            return member
    try:
        return enum_type(value)
    except ValueError as e:
        raise ArgumentParseError(text, f"{value!r} is not a valid {enum_type.__name__}") from e
