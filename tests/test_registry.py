"""Tests for FunctionRegistry."""

from __future__ import annotations

from typing import Annotated

import pytest

from openai_wrapper.errors import ConfigurationError
from openai_wrapper.functions.base import FunctionDescriptor
from openai_wrapper.functions.decorator import Param, function_tool
from openai_wrapper.functions.registry import FunctionRegistry
from openai_wrapper.types import FunctionCall


def _echo(name: str = "echo") -> FunctionDescriptor:
    return (
        FunctionDescriptor.builder(name, "Echo the text back")
        .add("text", "string", "Text to echo")
        .build(lambda text: text)
    )


def _call(name: str, arguments: str) -> FunctionCall:
    return FunctionCall.from_dict({"name": name, "arguments": arguments})


class TestRegistration:
    def test_lookup(self):
        registry = FunctionRegistry([_echo()])
        assert "echo" in registry
        assert registry.get("echo").name == "echo"
        assert registry.get("missing") is None
        assert registry.function_names() == ["echo"]
        assert len(registry) == 1

    def test_empty_registry_is_falsy(self):
        assert not FunctionRegistry()

    def test_duplicate_name(self):
        with pytest.raises(ConfigurationError, match="Duplicate function name"):
            FunctionRegistry([_echo(), _echo()])

    def test_decorated_function_accepted(self):
        @function_tool
        def shout(text: Annotated[str, Param("Text to shout")]) -> str:
            """Upper-case the text."""
            return text.upper()

        registry = FunctionRegistry([shout])
        assert registry.get("shout") is shout.descriptor
        assert registry.list_functions() == [shout.descriptor]

    def test_non_descriptor_rejected(self):
        with pytest.raises(ConfigurationError):
            FunctionRegistry([lambda: None])  # type: ignore[list-item]

    def test_iteration_keeps_registration_order(self):
        registry = FunctionRegistry([_echo("one"), _echo("two")])
        assert [fn.name for fn in registry] == ["one", "two"]


class TestExecute:
    async def test_runs_function(self):
        registry = FunctionRegistry([_echo()])
        assert await registry.execute(_call("echo", '{"text": "hi"}')) == "hi"

    async def test_unknown_function_returns_none(self):
        registry = FunctionRegistry([_echo()])
        assert await registry.execute(_call("missing", "{}")) is None

    async def test_long_result_returned_whole(self):
        registry = FunctionRegistry([_echo()])
        text = "x" * 50_000
        assert await registry.execute(_call("echo", '{"text": "%s"}' % text)) == text
