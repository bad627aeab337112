"""Exception hierarchy for openai_wrapper.

Usage errors (``ConfigurationError``) are raised before any network I/O.
Runtime failures (``APIError``, ``ResponseFormatError``,
``StreamBufferExceededError``) abort the current call.  Failures inside a
local function are never raised; they are turned into text for the model.
"""

from __future__ import annotations


class OpenAIWrapperError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(OpenAIWrapperError, ValueError):
    """A function descriptor, option or call combination is invalid."""


class APIError(OpenAIWrapperError):
    """The remote service answered with a non-success status, or could not
    be reached at all (``status_code`` is ``None`` in that case)."""

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (status {self.status_code}): {self.body[:500]}"


class ResponseFormatError(OpenAIWrapperError):
    """The response body was not valid JSON or had an unexpected shape."""


class StreamBufferExceededError(OpenAIWrapperError):
    """A single server-sent event did not fit into the decoder buffer."""

    def __init__(self, limit: int, buffered: int) -> None:
        super().__init__(
            f"Event stream frame exceeds buffer limit: {buffered} bytes buffered, "
            f"limit is {limit} bytes"
        )
        self.limit = limit
        self.buffered = buffered
