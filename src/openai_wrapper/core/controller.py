"""Completion controller: the request / function-call loop.

    request -> response -> function_call? -> run function -> append -> loop

The loop ends when the model answers with anything other than a function
call, or when no functions are active.  A call repeated with identical
arguments is not run again; instead every function is withdrawn for the
rest of the call so a stuck model cannot burn tokens indefinitely.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

from openai_wrapper.config import CompletionOptions
from openai_wrapper.errors import ConfigurationError, ResponseFormatError
from openai_wrapper.events.bus import EventBus
from openai_wrapper.functions.base import FunctionDescriptor
from openai_wrapper.functions.registry import FunctionRegistry
from openai_wrapper.llm.client import ChatClient
from openai_wrapper.llm.request_builder import build_request_body
from openai_wrapper.types import (
    ChatCompletion,
    CompletionEvent,
    EventType,
    FinishReason,
    FunctionCall,
    Message,
)

_logger = logging.getLogger(__name__)

DUPLICATE_CALL_NOTICE = (
    "[Internal Thought] I've already called that function with the same "
    "arguments, there must be an error somewhere."
)

FunctionsArg = FunctionRegistry | Iterable[FunctionDescriptor] | None


@dataclass
class CallHistory:
    """Function calls requested during one controller call, oldest first."""

    calls: list[FunctionCall] = field(default_factory=list)

    def record(self, call: FunctionCall) -> bool:
        """Append *call*; return True if it repeats the previous call."""
        repeated = bool(self.calls) and self.calls[-1].signature() == call.signature()
        self.calls.append(call)
        return repeated

    def __len__(self) -> int:
        return len(self.calls)


def _as_registry(functions: FunctionsArg) -> FunctionRegistry:
    if functions is None:
        return FunctionRegistry()
    if isinstance(functions, FunctionRegistry):
        return functions
    return FunctionRegistry(functions)


class CompletionController:
    """Runs chat completions, including local function calls.

    Parameters
    ----------
    client:
        Transport used for every round trip.
    options:
        Default options; each call may pass its own.
    event_bus:
        Receives lifecycle events (optional).

    Not safe for concurrent use on the same conversation list.
    """

    def __init__(
        self,
        client: ChatClient,
        options: CompletionOptions | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._client = client
        self._options = options or client.spec.options
        self._event_bus = event_bus

    @property
    def options(self) -> CompletionOptions:
        return self._options

    # ------------------------------------------------------------------
    # Full responses with function calling
    # ------------------------------------------------------------------

    async def get_chat_completion(
        self,
        messages: list[Message],
        functions: FunctionsArg = None,
        options: CompletionOptions | None = None,
    ) -> ChatCompletion:
        """Complete *messages*, running any functions the model asks for.

        Function results (and duplicate-call notices) are appended to
        *messages* in place.  Returns the first completion that is not a
        function call.
        """
        options = (options or self._options).validate()
        active = _as_registry(functions)
        history = CallHistory()

        while True:
            body = build_request_body(
                messages, options, stream=False,
                functions=active.list_functions() or None,
            )
            await self._emit(EventType.COMPLETION_REQUEST, {
                "model": options.model,
                "messages": len(messages),
                "functions": active.function_names(),
            })

            completion = await self._client.post_completion(body)
            choice = completion.first_choice
            if choice is None:
                raise ResponseFormatError("Completion response contained no choices")

            await self._emit(EventType.COMPLETION_RESPONSE, {
                "id": completion.id,
                "finish_reason": choice.finish_reason,
            })

            if choice.finish_reason != FinishReason.FUNCTION_CALL or not active:
                await self._emit(EventType.COMPLETION_DONE, {
                    "id": completion.id,
                    "function_calls": len(history),
                })
                return completion

            call = choice.function_call
            if call is None:
                _logger.debug("Model reported a function call but sent none")
                await self._emit(EventType.COMPLETION_DONE, {
                    "id": completion.id,
                    "function_calls": len(history),
                })
                return completion

            _logger.debug(
                "Function call requested '%s' args: %s",
                call.name, [(a.name, a.value, a.type) for a in call.arguments],
            )
            await self._emit(EventType.FUNCTION_REQUESTED, {
                "name": call.name,
                "arguments": {a.name: a.value for a in call.arguments},
            })

            repeated = history.record(call)
            if repeated and not options.allow_repeated_function_calls:
                _logger.warning(
                    "Function '%s' requested twice with identical arguments; "
                    "disabling functions for this completion", call.name,
                )
                messages.append(Message.assistant(DUPLICATE_CALL_NOTICE))
                active = FunctionRegistry()
                await self._emit(EventType.FUNCTION_DUPLICATE, {"name": call.name})
                continue

            result = await active.execute(call)
            if result is None:
                await self._emit(EventType.FUNCTION_NOT_FOUND, {
                    "name": call.name,
                    "available": active.function_names(),
                })
                continue

            _logger.debug("Function result: '%s'", result)
            messages.append(Message.function(call.name, result))
            event_type = (
                EventType.FUNCTION_ERROR if result.startswith("[Function Error]")
                else EventType.FUNCTION_EXECUTED
            )
            await self._emit(event_type, {"name": call.name, "result": result})

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def iter_streaming_chat_completion(
        self,
        messages: list[Message],
        options: CompletionOptions | None = None,
        functions: FunctionsArg = None,
    ) -> Iterator[ChatCompletion]:
        """Return an iterator of completion deltas for *messages*.

        Validation happens here, before the first read; the request is sent
        when iteration starts.  Function calling is not supported.
        """
        if functions is not None and len(_as_registry(functions)) > 0:
            raise ConfigurationError(
                "Function calls are not supported with streaming output"
            )
        options = (options or self._options).validate()
        body = build_request_body(messages, options, stream=True)
        return self._client.stream_completion(body)

    def get_streaming_chat_completion(
        self,
        messages: list[Message],
        callback: Callable[[ChatCompletion], Any],
        options: CompletionOptions | None = None,
        functions: FunctionsArg = None,
    ) -> int | None:
        """Stream a completion, calling *callback* once per delta.

        Blocks the calling thread until the stream ends.  Returns the HTTP
        status code of the response.
        """
        for delta in self.iter_streaming_chat_completion(messages, options, functions):
            callback(delta)
        return self._client.last_status_code

    async def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        if self._event_bus:
            await self._event_bus.emit(CompletionEvent(type=event_type, data=data))
