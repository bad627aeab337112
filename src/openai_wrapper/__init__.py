"""Client for the chat completions API with streaming and local function calling."""

from openai_wrapper.config import ClientSpec, CompletionOptions, LanguageModels, load_config
from openai_wrapper.core.controller import CompletionController
from openai_wrapper.errors import (
    APIError,
    ConfigurationError,
    OpenAIWrapperError,
    ResponseFormatError,
    StreamBufferExceededError,
)
from openai_wrapper.events.bus import EventBus
from openai_wrapper.functions import (
    FunctionDescriptor,
    FunctionRegistry,
    Param,
    describe_function,
    function_tool,
)
from openai_wrapper.llm.client import ChatClient
from openai_wrapper.types import ChatCompletion, FinishReason, FunctionCall, Message, Role

__version__ = "0.3.0"

__all__ = [
    "APIError",
    "ChatClient",
    "ChatCompletion",
    "ClientSpec",
    "CompletionController",
    "CompletionOptions",
    "ConfigurationError",
    "EventBus",
    "FinishReason",
    "FunctionCall",
    "FunctionDescriptor",
    "FunctionRegistry",
    "LanguageModels",
    "Message",
    "OpenAIWrapperError",
    "Param",
    "ResponseFormatError",
    "Role",
    "StreamBufferExceededError",
    "describe_function",
    "function_tool",
    "load_config",
]
