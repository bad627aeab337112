"""Lifecycle events published by the completion controller."""

from openai_wrapper.events.bus import EventBus

__all__ = ["EventBus"]
