"""Shared data types for openai_wrapper."""

from __future__ import annotations

import enum
import json
import time
from dataclasses import dataclass, field
from typing import Any

from openai_wrapper.errors import ResponseFormatError


# ---------------------------------------------------------------------------
# Conversation types
# ---------------------------------------------------------------------------

class Role(str, enum.Enum):
    """Author of a conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


class FinishReason:
    """Values of ``choices[].finish_reason``.  ``None`` means in progress."""

    STOP = "stop"
    LENGTH = "length"
    CONTENT_FILTER = "content_filter"
    FUNCTION_CALL = "function_call"


def _raw_text(value: Any) -> str:
    """Render a decoded JSON value the way it appeared on the wire."""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def _int_field(data: dict[str, Any], key: str, where: str) -> int:
    """Read an integer field of a response object; missing or null is 0."""
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ResponseFormatError(f"'{where}.{key}' is not an integer: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ResponseFormatError(f"'{where}.{key}' is not an integer: {value!r}") from e


def _json_kind(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    if isinstance(value, list):
        return "array"
    return "object"


@dataclass(frozen=True)
class FunctionArgument:
    """One argument of a model-requested function call.

    ``value`` is always the raw text; conversion to the target type happens
    in ``FunctionDescriptor.run()``.
    """

    name: str
    value: str
    type: str = "string"

    def typed_value(self) -> Any:
        if self.type == "string":
            return self.value
        try:
            return json.loads(self.value)
        except json.JSONDecodeError:
            return self.value


@dataclass
class FunctionCall:
    """Function call directive parsed from an assistant message."""

    name: str
    arguments: list[FunctionArgument] = field(default_factory=list)
    raw_arguments: Any = None

    def signature(self) -> tuple[str, tuple[tuple[str, str], ...]]:
        """Identity of the call: name plus ordered raw argument values."""
        return self.name, tuple((a.name, a.value) for a in self.arguments)

    def to_dict(self) -> dict[str, Any]:
        if self.raw_arguments is not None:
            arguments = self.raw_arguments
        else:
            arguments = json.dumps({a.name: a.typed_value() for a in self.arguments})
        return {"name": self.name, "arguments": arguments}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FunctionCall:
        """Parse ``message.function_call``.

        ``arguments`` is either a JSON-encoded object string (what the live
        service sends) or a list of ``{name, value, type}`` records.
        """
        if not isinstance(data, dict):
            raise ResponseFormatError(f"function_call must be an object, got {type(data).__name__}")
        name = data.get("name") or ""
        raw = data.get("arguments")

        if raw is None or raw == "":
            return cls(name=name, arguments=[], raw_arguments=raw)

        if isinstance(raw, list):
            args: list[FunctionArgument] = []
            for entry in raw:
                if not isinstance(entry, dict) or "name" not in entry:
                    raise ResponseFormatError(f"Malformed function argument: {entry!r}")
                value = entry.get("value", entry.get("rawValue", entry.get("raw_value", "")))
                args.append(
                    FunctionArgument(
                        name=entry["name"],
                        value=_raw_text(value),
                        type=entry.get("type") or _json_kind(value),
                    )
                )
            return cls(name=name, arguments=args, raw_arguments=raw)

        decoded = raw
        if isinstance(raw, str):
            try:
                decoded = json.loads(raw)
            except json.JSONDecodeError as e:
                raise ResponseFormatError(
                    f"Function call arguments for '{name}' are not valid JSON: {e}"
                ) from e
        if not isinstance(decoded, dict):
            raise ResponseFormatError(
                f"Function call arguments for '{name}' must be an object, got {type(decoded).__name__}"
            )
        args = [
            FunctionArgument(name=k, value=_raw_text(v), type=_json_kind(v))
            for k, v in decoded.items()
        ]
        return cls(name=name, arguments=args, raw_arguments=raw)


@dataclass
class Message:
    """A message as part of a conversation.

    Streaming deltas reuse this type, so every field may be unset.
    """

    role: str | None = None
    content: str | None = None
    name: str | None = None
    function_call: FunctionCall | None = None

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM.value, content=content)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER.value, content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role=Role.ASSISTANT.value, content=content)

    @classmethod
    def function(cls, name: str, content: str) -> Message:
        return cls(role=Role.FUNCTION.value, name=name, content=content)

    def to_dict(self) -> dict[str, Any]:
        # The service needs these exact lower-case names.
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.name is not None:
            data["name"] = self.name
        if self.function_call is not None:
            data["function_call"] = self.function_call.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        if not isinstance(data, dict):
            raise ResponseFormatError(f"message must be an object, got {type(data).__name__}")
        fc = data.get("function_call")
        return cls(
            role=data.get("role"),
            content=data.get("content"),
            name=data.get("name"),
            function_call=FunctionCall.from_dict(fc) if fc is not None else None,
        )


# ---------------------------------------------------------------------------
# Completion types
# ---------------------------------------------------------------------------

@dataclass
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Usage:
        return cls(
            prompt_tokens=_int_field(data, "prompt_tokens", "usage"),
            completion_tokens=_int_field(data, "completion_tokens", "usage"),
            total_tokens=_int_field(data, "total_tokens", "usage"),
        )


@dataclass
class Choice:
    """One choice of a completion.

    ``message`` is set for full responses, ``delta`` for streamed chunks.
    """

    message: Message | None = None
    delta: Message | None = None
    finish_reason: str | None = None
    index: int = 0

    @property
    def function_call(self) -> FunctionCall | None:
        msg = self.message or self.delta
        return msg.function_call if msg else None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Choice:
        if not isinstance(data, dict):
            raise ResponseFormatError(f"choice must be an object, got {type(data).__name__}")
        message = data.get("message")
        delta = data.get("delta")
        return cls(
            message=Message.from_dict(message) if message is not None else None,
            delta=Message.from_dict(delta) if delta is not None else None,
            finish_reason=data.get("finish_reason"),
            index=_int_field(data, "index", "choice"),
        )


@dataclass
class ChatCompletion:
    """A model response (or one streamed chunk of it) for a conversation."""

    id: str | None = None
    object: str | None = None
    created: int = 0
    model: str | None = None
    usage: Usage | None = None
    choices: list[Choice] = field(default_factory=list)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def first_choice(self) -> Choice | None:
        return self.choices[0] if self.choices else None

    @property
    def finish_reason(self) -> str | None:
        choice = self.first_choice
        return choice.finish_reason if choice else None

    @property
    def content(self) -> str:
        """Text of the first choice (message or delta), or ``""``."""
        choice = self.first_choice
        if choice is None:
            return ""
        msg = choice.message or choice.delta
        return (msg.content or "") if msg else ""

    @classmethod
    def from_dict(cls, data: Any) -> ChatCompletion:
        if not isinstance(data, dict):
            raise ResponseFormatError(
                f"Completion must be a JSON object, got {type(data).__name__}"
            )
        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise ResponseFormatError("'choices' must be a list")
        usage = data.get("usage")
        return cls(
            id=data.get("id"),
            object=data.get("object"),
            created=_int_field(data, "created", "completion"),
            model=data.get("model"),
            usage=Usage.from_dict(usage) if isinstance(usage, dict) else None,
            choices=[Choice.from_dict(c) for c in choices],
            raw_response=data,
        )


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventType(enum.Enum):
    """Events published by the completion controller."""

    COMPLETION_REQUEST = "completion.request"
    COMPLETION_RESPONSE = "completion.response"
    COMPLETION_DONE = "completion.done"

    FUNCTION_REQUESTED = "function.requested"
    FUNCTION_EXECUTED = "function.executed"
    FUNCTION_ERROR = "function.error"
    FUNCTION_NOT_FOUND = "function.not_found"
    FUNCTION_DUPLICATE = "function.duplicate"


@dataclass
class CompletionEvent:
    """Event emitted by the controller via the EventBus."""

    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
