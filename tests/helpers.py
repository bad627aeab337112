"""Canned completions and a chunked event stream for the tests."""

from __future__ import annotations

import json
from typing import Any, Iterator

import httpx


class ChunkedByteStream(httpx.SyncByteStream):
    """Response body delivered at most *max_read* bytes per read."""

    def __init__(self, data: bytes, max_read: int = 16) -> None:
        self._data = data
        self._max_read = max_read

    def __iter__(self) -> Iterator[bytes]:
        for i in range(0, len(self._data), self._max_read):
            yield self._data[i : i + self._max_read]


def sse_frame(payload: dict[str, Any] | str) -> bytes:
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {body}\n\n".encode()


def delta_chunk(
    content: str | None = None,
    role: str | None = None,
    finish_reason: str | None = None,
) -> dict[str, Any]:
    delta: dict[str, Any] = {}
    if role is not None:
        delta["role"] = role
    if content is not None:
        delta["content"] = content
    return {
        "id": "chatcmpl-7AnQVkmoqjTrJqnwJ3it0iJP11kIo",
        "object": "chat.completion.chunk",
        "created": 1682807631,
        "model": "gpt-3.5-turbo-0301",
        "choices": [{"delta": delta, "index": 0, "finish_reason": finish_reason}],
    }


def hello_there_stream() -> bytes:
    """Five deltas spelling 'Hello there!' followed by [DONE]."""
    return b"".join([
        sse_frame(delta_chunk(role="assistant")),
        sse_frame(delta_chunk(content="Hello")),
        sse_frame(delta_chunk(content=" there")),
        sse_frame(delta_chunk(content="!")),
        sse_frame(delta_chunk(finish_reason="stop")),
        b"data: [DONE]\n\n",
    ])


def completion_body(
    content: str | None = "Hello!",
    finish_reason: str = "stop",
    function_call: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """A non-streaming chat completion response."""
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if function_call is not None:
        message["function_call"] = function_call
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1686787200,
        "model": "gpt-3.5-turbo-0613",
        "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30},
        "choices": [{"message": message, "finish_reason": finish_reason, "index": 0}],
    }


def function_call_body(name: str, **arguments: Any) -> dict[str, Any]:
    return completion_body(
        content=None,
        finish_reason="function_call",
        function_call={"name": name, "arguments": json.dumps(arguments)},
    )
