"""Incremental decoder for the server-sent-event stream of a completion.

Each event is framed as ``data: <json>`` terminated by a blank line
(``\\n\\n``).  The literal payload ``[DONE]`` ends the stream.

Bytes are fed in chunks of any size, down to a single byte.  A frame longer
than the buffer limit is an error however its bytes arrive.  Decoding reads
an immutable snapshot of the unconsumed bytes and reports how many bytes a
step consumed; a partial frame is never consumed.
"""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from openai_wrapper.config import DEFAULT_STREAM_BUFFER
from openai_wrapper.errors import ResponseFormatError, StreamBufferExceededError

_logger = logging.getLogger(__name__)

DATA_PREFIX = b"data: "
DONE_PAYLOAD = b"[DONE]"
_FRAME_END = b"\n\n"
_NEWLINE = 0x0A


class StepKind(enum.Enum):
    EVENT = "event"          # one JSON payload decoded
    SKIPPED = "skipped"      # bytes consumed without a payload
    DONE = "done"            # termination sentinel
    NEED_MORE = "need_more"  # no complete frame buffered yet


@dataclass(frozen=True)
class DecodeStep:
    """Outcome of one ``try_consume_one()`` call."""

    kind: StepKind
    consumed: int = 0
    payload: Any = None


_NEED_MORE = DecodeStep(StepKind.NEED_MORE)


def try_consume_one(data: bytes, start: int = 0) -> DecodeStep:
    """Try to extract exactly one frame from ``data[start:]``.

    ``consumed`` is counted from *start*, so the caller's next offset is
    ``start + step.consumed``.  A ``NEED_MORE`` step always consumes zero
    bytes.  Invalid JSON raises ``ResponseFormatError``.
    """
    pos = start
    size = len(data)
    # Stray newlines between frames carry nothing; they are their own step.
    while pos < size and data[pos] == _NEWLINE:
        pos += 1
    if pos > start:
        return DecodeStep(StepKind.SKIPPED, consumed=pos - start)

    end = data.find(_FRAME_END, pos)
    if end < 0:
        return _NEED_MORE

    frame = data[pos:end]
    consumed = end + len(_FRAME_END) - start

    if not frame.startswith(DATA_PREFIX):
        _logger.debug("Skipping non-data frame: %r", frame[:80])
        return DecodeStep(StepKind.SKIPPED, consumed=consumed)

    payload = frame[len(DATA_PREFIX):].strip()
    if payload == DONE_PAYLOAD:
        return DecodeStep(StepKind.DONE, consumed=consumed)

    try:
        decoded = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ResponseFormatError(f"Invalid JSON in event stream: {e}") from e
    return DecodeStep(StepKind.EVENT, consumed=consumed, payload=decoded)


class EventStreamDecoder:
    """Stateful wrapper around ``try_consume_one()`` for one response.

    Usage::

        decoder = EventStreamDecoder()
        for chunk in response.iter_bytes():
            for payload in decoder.feed(chunk):
                handle(payload)
            if decoder.done:
                break
        decoder.close()
    """

    def __init__(self, max_buffer: int = DEFAULT_STREAM_BUFFER) -> None:
        self._max_buffer = max_buffer
        self._buffer = bytearray()
        self._done = False

    @property
    def done(self) -> bool:
        """True once the ``[DONE]`` frame has been seen."""
        return self._done

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet consumed."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[Any]:
        """Append *chunk* and return every payload it completes, in order."""
        if self._done or not chunk:
            return []
        self._buffer.extend(chunk)

        payloads: list[Any] = []
        # A frame can only complete on a chunk that carries a newline.
        if b"\n" in chunk:
            snapshot = bytes(self._buffer)
            offset = 0
            while offset < len(snapshot):
                step = try_consume_one(snapshot, offset)
                if step.kind is StepKind.NEED_MORE:
                    break
                # Runs of blank lines are not frames and never count against the limit.
                if step.consumed > self._max_buffer and snapshot[offset] != _NEWLINE:
                    raise StreamBufferExceededError(self._max_buffer, step.consumed)
                offset += step.consumed
                if step.kind is StepKind.DONE:
                    self._done = True
                    break
                if step.kind is StepKind.EVENT:
                    payloads.append(step.payload)

            if self._done:
                if offset < len(snapshot):
                    _logger.debug("Ignoring %d bytes after [DONE]", len(snapshot) - offset)
                self._buffer.clear()
                return payloads
            del self._buffer[:offset]

        if len(self._buffer) > self._max_buffer:
            raise StreamBufferExceededError(self._max_buffer, len(self._buffer))
        return payloads

    def close(self) -> None:
        """Signal end of data.  A trailing partial frame is discarded."""
        if self._buffer and not self._done:
            _logger.warning(
                "Event stream ended with %d bytes of incomplete frame", len(self._buffer),
            )
        self._buffer.clear()

    def iter_payloads(self, chunks: Iterable[bytes]) -> Iterator[Any]:
        """Decode a whole chunk iterable, stopping at ``[DONE]`` or EOF."""
        for chunk in chunks:
            yield from self.feed(chunk)
            if self._done:
                break
        self.close()
