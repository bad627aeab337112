"""Local functions the model can call."""

from openai_wrapper.functions.base import FunctionBuilder, FunctionDescriptor, ParameterSpec
from openai_wrapper.functions.decorator import Param, describe_function, function_tool
from openai_wrapper.functions.registry import FunctionRegistry

__all__ = [
    "FunctionBuilder",
    "FunctionDescriptor",
    "FunctionRegistry",
    "Param",
    "ParameterSpec",
    "describe_function",
    "function_tool",
]
