"""Outbound request body for the chat completions endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Sequence

from openai_wrapper.config import CompletionOptions
from openai_wrapper.errors import ConfigurationError
from openai_wrapper.types import Message

if TYPE_CHECKING:
    from openai_wrapper.functions.base import FunctionDescriptor


def _message_dict(message: Message | dict[str, Any]) -> dict[str, Any]:
    if isinstance(message, Message):
        return message.to_dict()
    if isinstance(message, dict) and "role" in message:
        return dict(message)
    raise ConfigurationError(f"Not a conversation message: {message!r}")


def build_request_body(
    messages: Sequence[Message | dict[str, Any]],
    options: CompletionOptions | None = None,
    stream: bool = False,
    functions: Sequence[FunctionDescriptor] | None = None,
) -> dict[str, Any]:
    """Build the JSON body for ``POST /chat/completions``.

    Field names are fixed by the service and must stay lower-case.
    ``functions`` is only emitted when at least one descriptor is given.
    """
    options = (options or CompletionOptions()).validate()

    body: dict[str, Any] = {
        "model": options.model,
        "messages": [_message_dict(m) for m in messages],
        "temperature": options.temperature,
        "stream": stream,
    }
    if functions:
        seen: set[str] = set()
        schemas: list[dict[str, Any]] = []
        for fn in functions:
            if fn.name in seen:
                raise ConfigurationError(f"Duplicate function name: {fn.name}")
            seen.add(fn.name)
            schemas.append(fn.to_schema())
        body["functions"] = schemas
    return body
