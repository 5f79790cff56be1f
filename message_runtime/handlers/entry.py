"""Invocation entry points: a handler function plus its extractor pipeline."""

import inspect
import logging
import typing
from dataclasses import dataclass
from typing import Any, List, Optional

from ..exceptions import DataNotFoundError, ExtractionError, HandlerSignatureError
from .extractors import resolve_extractor, run_extractor
from .types import AnyHandler, Extractor, InvocationContext

logger = logging.getLogger(__name__)

_EMPTY = inspect.Parameter.empty


@dataclass(frozen=True)
class HandlerParameter:
    """One step of the extraction pipeline."""

    name: str
    annotation: Any
    extractor: Extractor
    keyword_only: bool = False
    default: Any = _EMPTY

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY


class HandlerEntry:
    """Uniform wrapper turning a typed function into an invocable handler.

    The extractor pipeline is built once from the function's annotations, in
    declared parameter order. Invoking the entry runs the extractors one after
    another and calls the function only if every extraction succeeded.
    """

    def __init__(self, func: AnyHandler, name: Optional[str] = None):
        """Build the entry point.

        Args:
            func: Handler function (async or plain)
            name: Name used in logs (defaults to the function's qualified name)

        Raises:
            HandlerSignatureError: If a parameter has no usable annotation
        """
        if not callable(func):
            raise HandlerSignatureError(f"Handler must be callable, got {func!r}")

        self.func = func
        self.name = name or getattr(func, "__qualname__", None) or repr(func)
        self.parameters: List[HandlerParameter] = self._build_pipeline(func)

    def _build_pipeline(self, func: AnyHandler) -> List[HandlerParameter]:
        try:
            hints = typing.get_type_hints(func)
        except (NameError, TypeError) as e:
            raise HandlerSignatureError(f"Cannot resolve annotations of {self.name}: {e}") from e

        parameters = []
        for param in inspect.signature(func).parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                raise HandlerSignatureError(
                    f"{self.name}: variadic parameter '{param.name}' cannot be extracted"
                )
            if param.name not in hints:
                raise HandlerSignatureError(
                    f"{self.name}: parameter '{param.name}' needs a type annotation"
                )
            try:
                extractor = resolve_extractor(hints[param.name])
            except HandlerSignatureError as e:
                raise HandlerSignatureError(f"{self.name}: parameter '{param.name}': {e}") from e

            parameters.append(
                HandlerParameter(
                    name=param.name,
                    annotation=hints[param.name],
                    extractor=extractor,
                    keyword_only=param.kind == param.KEYWORD_ONLY,
                    default=param.default,
                )
            )
        return parameters

    async def extract(self, context: InvocationContext) -> tuple:
        """Run the pipeline and return ``(args, kwargs)`` for the function.

        Raises:
            ExtractionError: On the first parameter that cannot be produced
        """
        args: List[Any] = []
        kwargs = {}
        for param in self.parameters:
            try:
                value = await run_extractor(param.extractor, context)
            except DataNotFoundError as e:
                if not param.has_default:
                    raise self._annotate(e, param)
                value = param.default
            except ExtractionError as e:
                raise self._annotate(e, param)

            if param.keyword_only:
                kwargs[param.name] = value
            else:
                args.append(value)
        return args, kwargs

    async def invoke(self, context: InvocationContext) -> Any:
        """Extract every argument, then call the function.

        Raises:
            ExtractionError: If an argument cannot be produced; the function is not called
            Exception: Whatever the function itself raises
        """
        args, kwargs = await self.extract(context)
        return await self.call(args, kwargs)

    async def call(self, args: List[Any], kwargs: dict) -> Any:
        """Call the function with already extracted arguments."""
        logger.debug(f"Invoking handler {self.name}")
        result = self.func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _annotate(self, error: ExtractionError, param: HandlerParameter) -> ExtractionError:
        error.handler = self.name
        error.parameter = param.name
        return error

    def __repr__(self) -> str:
        params = ", ".join(p.name for p in self.parameters)
        return f"HandlerEntry({self.name}({params}))"
