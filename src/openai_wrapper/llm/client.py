"""HTTP transport for the chat completions endpoint.

Uses ``httpx.AsyncClient`` for full responses and a blocking
``httpx.Client`` for event streams, which are read on the caller's thread.
Pass ``transport`` / ``async_transport`` (e.g. ``httpx.MockTransport``) to
replace the network.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Iterator

import httpx

from openai_wrapper.config import ClientSpec
from openai_wrapper.errors import APIError, ResponseFormatError
from openai_wrapper.types import ChatCompletion

from .sse import EventStreamDecoder

_logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/chat/completions"


class ChatClient:
    """Sends completion requests and decodes the responses."""

    def __init__(
        self,
        spec: ClientSpec,
        transport: httpx.BaseTransport | None = None,
        async_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.spec = spec
        headers = {
            "Authorization": f"Bearer {spec.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        timeout = httpx.Timeout(spec.timeout, connect=30)
        self._client = httpx.AsyncClient(
            base_url=spec.url,
            headers=headers,
            timeout=timeout,
            transport=async_transport,
        )
        self._stream_client = httpx.Client(
            base_url=spec.url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self._last_status_code: int | None = None

    # ------------------------------------------------------------------
    # Full response
    # ------------------------------------------------------------------

    async def post_completion(self, body: dict[str, Any]) -> ChatCompletion:
        """POST *body* and return the decoded completion.

        Raises ``APIError`` for network failures and non-success statuses,
        ``ResponseFormatError`` for bodies that are not a completion.
        """
        start = time.monotonic()
        try:
            resp = await self._client.post(COMPLETIONS_PATH, json=body)
        except httpx.HTTPError as e:
            raise APIError(f"Chat completion request failed: {e}") from e

        self._last_status_code = resp.status_code
        if resp.is_error:
            raise APIError(
                "Chat completion request failed", status_code=resp.status_code, body=resp.text,
            )

        try:
            data = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseFormatError(f"Completion response is not valid JSON: {e}") from e

        completion = ChatCompletion.from_dict(data)
        _logger.debug(
            "Completion %s received in %.0f ms (finish_reason=%s)",
            completion.id, (time.monotonic() - start) * 1000, completion.finish_reason,
        )
        return completion

    # ------------------------------------------------------------------
    # Event stream
    # ------------------------------------------------------------------

    def stream_completion(self, body: dict[str, Any]) -> Iterator[ChatCompletion]:
        """POST *body* and yield one ``ChatCompletion`` delta per event.

        Blocks on each read.  Stops at ``[DONE]`` or end of data, whichever
        comes first.  ``last_status_code`` is set once headers arrive.
        """
        decoder = EventStreamDecoder(max_buffer=self.spec.max_stream_buffer)
        try:
            with self._stream_client.stream("POST", COMPLETIONS_PATH, json=body) as resp:
                self._last_status_code = resp.status_code
                if resp.is_error:
                    resp.read()
                    raise APIError(
                        "Streaming chat completion request failed",
                        status_code=resp.status_code,
                        body=resp.text,
                    )
                for payload in decoder.iter_payloads(resp.iter_bytes()):
                    yield ChatCompletion.from_dict(payload)
        except httpx.HTTPError as e:
            raise APIError(f"Streaming chat completion failed: {e}") from e

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def last_status_code(self) -> int | None:
        """HTTP status of the most recent response."""
        return self._last_status_code

    async def close(self) -> None:
        """Close underlying HTTP clients."""
        await self._client.aclose()
        self._stream_client.close()

    async def __aenter__(self) -> ChatClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
