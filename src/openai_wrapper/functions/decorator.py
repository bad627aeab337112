"""Derive a ``FunctionDescriptor`` from an annotated Python function.

Types come from annotations, parameter descriptions from ``Annotated``
metadata::

    @function_tool
    def get_current_weather(
        location: Annotated[str, Param("The city and state, e.g. San Francisco, CA")],
        unit: Literal["celsius", "fahrenheit"] = "celsius",
    ) -> str:
        \"\"\"Get the current weather in a given location.\"\"\"

Parameters without a default are required.  Every problem is reported as a
``ConfigurationError`` when the descriptor is created.
"""

from __future__ import annotations

import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Literal, Sequence, Union

from openai_wrapper.errors import ConfigurationError
from openai_wrapper.functions.base import FunctionDescriptor, ParameterSpec, _infer_enum_type

_PYTHON_TYPES: dict[Any, str] = {
    int: "integer",
    float: "number",
    bool: "boolean",
    str: "string",
}


@dataclass(frozen=True)
class Param:
    """Parameter metadata for use inside ``typing.Annotated``."""

    description: str | None = None
    enum: Sequence[Any] | None = None
    required: bool | None = None


def _unwrap_optional(hint: Any) -> Any:
    origin = typing.get_origin(hint)
    if origin is Union or (hasattr(types, "UnionType") and origin is types.UnionType):
        members = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(members) == 1:
            return members[0]
    return hint


def _parameter_spec(fn_name: str, param: inspect.Parameter, hint: Any) -> ParameterSpec:
    meta: Param | None = None
    hint = _unwrap_optional(hint)
    if typing.get_origin(hint) is typing.Annotated:
        base, *extras = typing.get_args(hint)
        for extra in extras:
            if isinstance(extra, Param):
                meta = extra
                break
            if isinstance(extra, str) and meta is None:
                meta = Param(description=extra)
        hint = base
    hint = _unwrap_optional(hint)

    enum_values: tuple[Any, ...] | None = None
    if typing.get_origin(hint) is Literal:
        enum_values = tuple(typing.get_args(hint))
        declared = _infer_enum_type(enum_values)
    elif hint in _PYTHON_TYPES:
        declared = _PYTHON_TYPES[hint]
    elif hint is inspect.Parameter.empty:
        raise ConfigurationError(
            f"Parameter '{fn_name}.{param.name}' needs a type annotation"
        )
    else:
        raise ConfigurationError(
            f"Parameter '{fn_name}.{param.name}' has unsupported type {hint!r}"
        )

    if meta is not None and meta.enum is not None:
        enum_values = tuple(meta.enum)

    required = param.default is inspect.Parameter.empty
    if meta is not None and meta.required is not None:
        required = meta.required

    return ParameterSpec(
        name=param.name,
        type=declared,
        description=meta.description if meta else None,
        required=required,
        enum=enum_values,
    )


def _doc_summary(fn: Callable[..., Any]) -> str:
    doc = inspect.getdoc(fn) or ""
    return doc.split("\n\n", 1)[0].replace("\n", " ").strip()


def describe_function(
    fn: Callable[..., Any],
    description: str | None = None,
    name: str | None = None,
) -> FunctionDescriptor:
    """Build a descriptor for *fn* from its signature and annotations."""
    fn_name = name or getattr(fn, "__name__", "")
    try:
        hints = typing.get_type_hints(fn, include_extras=True)
    except Exception as e:
        raise ConfigurationError(f"Cannot resolve annotations of '{fn_name}': {e}") from e

    specs: list[ParameterSpec] = []
    for param in inspect.signature(fn).parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            raise ConfigurationError(
                f"Function '{fn_name}' uses *args/**kwargs, which cannot be described"
            )
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            raise ConfigurationError(
                f"Parameter '{fn_name}.{param.name}' is positional-only"
            )
        specs.append(_parameter_spec(fn_name, param, hints.get(param.name, param.annotation)))

    return FunctionDescriptor(
        name=fn_name,
        description=description or _doc_summary(fn),
        parameters=specs,
        invoker=fn,
    )


def function_tool(
    fn: Callable[..., Any] | None = None,
    *,
    description: str | None = None,
    name: str | None = None,
) -> Any:
    """Decorator form of :func:`describe_function`.

    The function stays callable; its descriptor is available as
    ``fn.descriptor`` and the function itself can be registered directly.
    """

    def decorate(target: Callable[..., Any]) -> Callable[..., Any]:
        target.descriptor = describe_function(target, description=description, name=name)  # type: ignore[attr-defined]
        return target

    if fn is not None:
        return decorate(fn)
    return decorate
