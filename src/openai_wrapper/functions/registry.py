"""Lookup table of the functions offered to the model during one call."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from openai_wrapper.errors import ConfigurationError
from openai_wrapper.functions.base import FunctionDescriptor
from openai_wrapper.types import FunctionCall

_logger = logging.getLogger(__name__)


class FunctionRegistry:
    """Read-only set of ``FunctionDescriptor``s keyed by name.

    Names must be unique; registering a second function under an existing
    name raises ``ConfigurationError``.  Functions decorated with
    ``@function_tool`` may be passed directly.
    """

    def __init__(self, functions: Iterable[FunctionDescriptor] = ()) -> None:
        self._functions: dict[str, FunctionDescriptor] = {}
        for fn in functions:
            self.register(fn)

    def register(self, fn: FunctionDescriptor) -> None:
        if not isinstance(fn, FunctionDescriptor):
            descriptor = getattr(fn, "descriptor", None)
            if not isinstance(descriptor, FunctionDescriptor):
                raise ConfigurationError(f"Not a function descriptor: {fn!r}")
            fn = descriptor
        if fn.name in self._functions:
            raise ConfigurationError(f"Duplicate function name: {fn.name}")
        self._functions[fn.name] = fn

    def get(self, name: str) -> FunctionDescriptor | None:
        return self._functions.get(name)

    def list_functions(self) -> list[FunctionDescriptor]:
        return list(self._functions.values())

    def function_names(self) -> list[str]:
        return list(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __bool__(self) -> bool:
        return bool(self._functions)

    def __iter__(self) -> Iterator[FunctionDescriptor]:
        return iter(self._functions.values())

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    async def execute(self, call: FunctionCall) -> str | None:
        """Run the function named by *call*.

        Returns ``None`` when no such function is registered; otherwise the
        result text (or an error text, see ``FunctionDescriptor.run``).
        """
        fn = self._functions.get(call.name)
        if fn is None:
            _logger.debug(
                "Requested function not found: %s (available: %s)",
                call.name, ", ".join(self._functions),
            )
            return None
        return await fn.arun(call.arguments)
