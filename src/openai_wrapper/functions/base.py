"""Local functions exposed to the model.

A ``FunctionDescriptor`` couples the JSON-Schema-like description the model
sees with an invoker that runs locally.  Descriptors are validated when they
are built, so a bad declaration fails before any request is sent.
"""

from __future__ import annotations

import copy
import inspect
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from openai_wrapper.errors import ConfigurationError
from openai_wrapper.types import FunctionArgument

_logger = logging.getLogger(__name__)

PARAMETER_TYPES = ("integer", "number", "boolean", "string")

_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

Invoker = Callable[..., Any]


def _matches_type(value: Any, declared: str) -> bool:
    if declared == "boolean":
        return isinstance(value, bool)
    if isinstance(value, bool):
        return False
    if declared == "integer":
        return isinstance(value, int)
    if declared == "number":
        return isinstance(value, (int, float))
    return isinstance(value, str)


def _infer_enum_type(values: Sequence[Any]) -> str:
    for declared in ("boolean", "integer", "number", "string"):
        if all(_matches_type(v, declared) for v in values):
            return declared
    raise ConfigurationError(f"Enum values must share one type, got {list(values)!r}")


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParameterSpec:
    """Definition of one function parameter."""

    name: str
    type: str  # integer, number, boolean, string
    description: str | None = None
    required: bool = True
    enum: tuple[Any, ...] | None = None

    def validate(self, function_name: str = "") -> None:
        where = f"{function_name}.{self.name}" if function_name else self.name
        if not self.name or not self.name.isidentifier():
            raise ConfigurationError(f"Invalid parameter name: {where!r}")
        if self.type not in PARAMETER_TYPES:
            raise ConfigurationError(
                f"Parameter '{where}' has unsupported type '{self.type}' "
                f"(expected one of {', '.join(PARAMETER_TYPES)})"
            )
        if self.enum is not None:
            if not self.enum:
                raise ConfigurationError(f"Parameter '{where}' declares an empty enum")
            for value in self.enum:
                if not _matches_type(value, self.type):
                    raise ConfigurationError(
                        f"Enum value {value!r} of parameter '{where}' is not of type '{self.type}'"
                    )
            if len(set(self.enum)) != len(self.enum):
                raise ConfigurationError(f"Parameter '{where}' repeats an enum value")
        elif self.type != "boolean" and not (self.description and self.description.strip()):
            # The model needs a reason to pick a free-form value.
            raise ConfigurationError(f"Parameter '{where}' requires a description")

    def to_schema(self) -> dict[str, Any]:
        prop: dict[str, Any] = {"type": self.type}
        if self.enum is not None:
            prop["enum"] = list(self.enum)
        elif self.description:
            prop["description"] = self.description
        return prop

    def convert(self, raw: str) -> Any:
        """Turn raw wire text into the declared Python type."""
        if self.type == "string":
            value: Any = raw
        elif self.type == "boolean":
            lowered = raw.strip().lower()
            if lowered not in ("true", "false"):
                raise ValueError(f"'{self.name}' expects 'true' or 'false', got {raw!r}")
            value = lowered == "true"
        elif self.type == "integer":
            value = int(raw.strip())
        else:
            value = float(raw.strip())
        if self.enum is not None and value not in self.enum:
            raise ValueError(
                f"'{self.name}' must be one of {list(self.enum)!r}, got {value!r}"
            )
        return value


# ---------------------------------------------------------------------------
# Descriptor
# ---------------------------------------------------------------------------

def _check_invoker(name: str, invoker: Invoker, parameters: Sequence[ParameterSpec]) -> None:
    if not callable(invoker):
        raise ConfigurationError(f"Invoker for function '{name}' is not callable")
    try:
        sig = inspect.signature(invoker)
    except (TypeError, ValueError):
        return  # builtins without introspectable signatures
    kinds = [p.kind for p in sig.parameters.values()]
    if inspect.Parameter.VAR_KEYWORD in kinds:
        return
    named = [
        p.name for p in sig.parameters.values()
        if p.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
    ]
    declared = [p.name for p in parameters]
    if named != declared:
        raise ConfigurationError(
            f"Function '{name}' declares parameters {declared} but its invoker "
            f"accepts {named}"
        )


def _result_text(result: Any) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, (dict, list)):
        return json.dumps(result)
    return str(result)


def _error_text(function_name: str, exc: BaseException) -> str:
    return f"[Function Error] {function_name}: {type(exc).__name__}: {exc}"


class FunctionDescriptor:
    """A callable function the model may ask to run.

    Build one with :meth:`builder` or
    :func:`openai_wrapper.functions.decorator.describe_function`.
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: Sequence[ParameterSpec],
        invoker: Invoker,
    ) -> None:
        if not name or not _NAME_PATTERN.match(name):
            raise ConfigurationError(
                f"Invalid function name {name!r}: use 1-64 letters, digits, '_' or '-'"
            )
        if not description or not description.strip():
            raise ConfigurationError(f"Function '{name}' requires a description")
        seen: set[str] = set()
        for p in parameters:
            p.validate(name)
            if p.name in seen:
                raise ConfigurationError(f"Function '{name}' repeats parameter '{p.name}'")
            seen.add(p.name)
        _check_invoker(name, invoker, parameters)

        self._name = name
        self._description = description
        self._parameters = tuple(parameters)
        self._invoker = invoker
        self._schema: dict[str, Any] | None = None

    @staticmethod
    def builder(name: str, description: str) -> FunctionBuilder:
        return FunctionBuilder(name, description)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> tuple[ParameterSpec, ...]:
        return self._parameters

    @property
    def invoker(self) -> Invoker:
        return self._invoker

    def __repr__(self) -> str:
        return f"FunctionDescriptor(name={self._name!r}, parameters={[p.name for p in self._parameters]})"

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def to_schema(self) -> dict[str, Any]:
        """Return the function description in the service's format."""
        if self._schema is None:
            properties: dict[str, Any] = {}
            required: list[str] = []
            for p in self._parameters:
                properties[p.name] = p.to_schema()
                if p.required:
                    required.append(p.name)
            parameters: dict[str, Any] = {"type": "object", "properties": properties}
            if required:
                parameters["required"] = required
            self._schema = {
                "name": self._name,
                "description": self._description,
                "parameters": parameters,
            }
        return copy.deepcopy(self._schema)

    # ------------------------------------------------------------------
    # Invocation
    # ------------------------------------------------------------------

    def _bind(self, arguments: Sequence[FunctionArgument]) -> dict[str, Any]:
        supplied = {a.name: a for a in arguments}
        unknown = set(supplied) - {p.name for p in self._parameters}
        if unknown:
            _logger.debug(
                "Ignoring unknown arguments for '%s': %s", self._name, sorted(unknown),
            )
        kwargs: dict[str, Any] = {}
        for p in self._parameters:
            arg = supplied.get(p.name)
            if arg is not None:
                kwargs[p.name] = p.convert(arg.value)
        return kwargs

    def run(self, arguments: Sequence[FunctionArgument]) -> str:
        """Invoke the function and return its result as text.

        Omitted arguments fall back to the invoker's defaults.  Conversion
        errors and exceptions raised by the invoker are returned as an error
        text instead of being raised.
        """
        try:
            result = self._invoker(**self._bind(arguments))
            if inspect.isawaitable(result):
                close = getattr(result, "close", None)
                if close is not None:
                    close()
                raise TypeError("async function used from a synchronous call; use arun()")
        except Exception as e:
            _logger.debug("Function '%s' failed: %s", self._name, e)
            return _error_text(self._name, e)
        return _result_text(result)

    async def arun(self, arguments: Sequence[FunctionArgument]) -> str:
        """Like :meth:`run` but also awaits coroutine invokers."""
        try:
            result = self._invoker(**self._bind(arguments))
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            _logger.debug("Function '%s' failed: %s", self._name, e)
            return _error_text(self._name, e)
        return _result_text(result)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

class FunctionBuilder:
    """Fluent construction of a ``FunctionDescriptor``.

    Usage::

        add = (
            FunctionDescriptor.builder("add", "Adds two integers")
            .add("a", "integer", "First operand")
            .add("b", "integer", "Second operand")
            .build(lambda a, b: a + b)
        )
    """

    def __init__(self, name: str, description: str) -> None:
        self._name = name
        self._description = description
        self._parameters: list[ParameterSpec] = []

    def add(
        self,
        name: str,
        type: str,
        description: str,
        required: bool = True,
    ) -> FunctionBuilder:
        """Add a plain (non-enum) parameter."""
        self._parameters.append(
            ParameterSpec(name=name, type=type, description=description, required=required)
        )
        return self

    def add_enum(
        self,
        name: str,
        values: Sequence[Any],
        required: bool = True,
        type: str | None = None,
    ) -> FunctionBuilder:
        """Add a parameter restricted to *values*.

        The parameter type is inferred from the values unless given.
        """
        values = tuple(values)
        if not values:
            raise ConfigurationError(f"Enum parameter '{name}' needs at least one value")
        declared = type or _infer_enum_type(values)
        self._parameters.append(
            ParameterSpec(name=name, type=declared, required=required, enum=values)
        )
        return self

    def add_boolean(
        self,
        name: str,
        description: str | None = None,
        required: bool = True,
    ) -> FunctionBuilder:
        """Add a boolean parameter; the description is optional."""
        self._parameters.append(
            ParameterSpec(name=name, type="boolean", description=description, required=required)
        )
        return self

    def build(self, invoker: Invoker) -> FunctionDescriptor:
        return FunctionDescriptor(self._name, self._description, self._parameters, invoker)
