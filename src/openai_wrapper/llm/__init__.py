"""HTTP transport, request body and event stream decoding."""

from openai_wrapper.llm.client import ChatClient
from openai_wrapper.llm.request_builder import build_request_body
from openai_wrapper.llm.sse import DecodeStep, EventStreamDecoder, StepKind, try_consume_one

__all__ = [
    "ChatClient",
    "DecodeStep",
    "EventStreamDecoder",
    "StepKind",
    "build_request_body",
    "try_consume_one",
]
