"""Completion controller for openai_wrapper."""

from openai_wrapper.core.controller import CallHistory, CompletionController

__all__ = ["CallHistory", "CompletionController"]
