"""Tests for the incremental server-sent-event decoder."""

from __future__ import annotations

import pytest

from helpers import delta_chunk, hello_there_stream, sse_frame
from openai_wrapper.errors import ResponseFormatError, StreamBufferExceededError
from openai_wrapper.llm.sse import EventStreamDecoder, StepKind, try_consume_one


def _decode_in_chunks(data: bytes, size: int) -> list:
    decoder = EventStreamDecoder()
    chunks = (data[i : i + size] for i in range(0, len(data), size))
    return list(decoder.iter_payloads(chunks))


class TestTryConsumeOne:
    def test_complete_frame(self):
        frame = sse_frame({"a": 1})
        step = try_consume_one(frame + b"data: {")
        assert step.kind is StepKind.EVENT
        assert step.payload == {"a": 1}
        assert step.consumed == len(frame)

    def test_partial_frame_consumes_nothing(self):
        frame = sse_frame({"a": 1})
        for cut in range(len(frame)):
            step = try_consume_one(frame[:cut])
            assert step.kind is StepKind.NEED_MORE
            assert step.consumed == 0

    def test_offset_is_relative_to_start(self):
        first = sse_frame({"n": 1})
        second = sse_frame({"n": 2})
        data = first + second
        step = try_consume_one(data, len(first))
        assert step.payload == {"n": 2}
        assert step.consumed == len(second)

    def test_done_sentinel(self):
        step = try_consume_one(b"data: [DONE]\n\n")
        assert step.kind is StepKind.DONE
        assert step.payload is None
        assert step.consumed == len(b"data: [DONE]\n\n")

    def test_done_needs_blank_line(self):
        assert try_consume_one(b"data: [DONE]\n").kind is StepKind.NEED_MORE

    def test_non_data_frame_skipped(self):
        step = try_consume_one(b": keep-alive\n\n")
        assert step.kind is StepKind.SKIPPED
        assert step.consumed == len(b": keep-alive\n\n")

    def test_leading_newlines_skipped(self):
        step = try_consume_one(b"\n\ndata")
        assert step.kind is StepKind.SKIPPED
        assert step.consumed == 2

    def test_invalid_json_is_fatal(self):
        with pytest.raises(ResponseFormatError):
            try_consume_one(b"data: {not json}\n\n")


class TestEventStreamDecoder:
    @pytest.mark.parametrize("size", [1, 2, 3, 7, 16, 64, 4096])
    def test_chunk_size_does_not_change_output(self, size: int):
        data = hello_there_stream()
        assert _decode_in_chunks(data, size) == _decode_in_chunks(data, len(data))

    def test_five_events_before_done(self):
        payloads = _decode_in_chunks(hello_there_stream(), 16)
        assert len(payloads) == 5
        contents = [p["choices"][0]["delta"].get("content") for p in payloads]
        assert contents == [None, "Hello", " there", "!", None]

    def test_done_halts_even_with_trailing_bytes(self):
        decoder = EventStreamDecoder()
        data = sse_frame({"n": 1}) + b"data: [DONE]\n\n" + sse_frame({"n": 2})
        assert decoder.feed(data) == [{"n": 1}]
        assert decoder.done
        assert decoder.feed(sse_frame({"n": 3})) == []
        assert decoder.pending == 0

    def test_partial_frame_stays_buffered(self):
        decoder = EventStreamDecoder()
        frame = sse_frame(delta_chunk(content="Hi"))
        assert decoder.feed(frame[:10]) == []
        assert decoder.pending == 10
        payloads = decoder.feed(frame[10:])
        assert len(payloads) == 1
        assert decoder.pending == 0

    def test_frame_split_between_newlines(self):
        decoder = EventStreamDecoder()
        assert decoder.feed(b'data: {"x": 1}\n') == []
        assert decoder.feed(b"\n") == [{"x": 1}]

    def test_end_of_data_without_done(self):
        data = sse_frame({"n": 1}) + sse_frame({"n": 2})
        assert _decode_in_chunks(data, 5) == [{"n": 1}, {"n": 2}]

    def test_truncated_tail_is_dropped(self, caplog):
        decoder = EventStreamDecoder()
        payloads = list(decoder.iter_payloads([sse_frame({"n": 1}), b'data: {"n"']))
        assert payloads == [{"n": 1}]
        assert decoder.pending == 0
        assert "incomplete frame" in caplog.text

    def test_oversized_frame_raises(self):
        decoder = EventStreamDecoder(max_buffer=32)
        with pytest.raises(StreamBufferExceededError) as exc_info:
            decoder.feed(b"data: " + b"x" * 64)
        assert exc_info.value.limit == 32

    def test_frame_exactly_at_limit_decodes(self):
        frame = sse_frame({"k": "v"})
        decoder = EventStreamDecoder(max_buffer=len(frame))
        assert decoder.feed(frame) == [{"k": "v"}]

    @pytest.mark.parametrize("size", [1, 16, 4096])
    def test_frame_at_limit_decodes_in_any_read_size(self, size: int):
        frame = sse_frame({"k": "v" * 40})
        decoder = EventStreamDecoder(max_buffer=len(frame))
        chunks = [frame[i : i + size] for i in range(0, len(frame), size)]
        assert list(decoder.iter_payloads(chunks)) == [{"k": "v" * 40}]

    @pytest.mark.parametrize("size", [1, 16, 4096])
    def test_oversized_frame_raises_in_any_read_size(self, size: int):
        frame = sse_frame({"k": "v" * 64})
        assert len(frame) > 64
        decoder = EventStreamDecoder(max_buffer=64)
        chunks = [frame[i : i + size] for i in range(0, len(frame), size)]
        with pytest.raises(StreamBufferExceededError):
            list(decoder.iter_payloads(chunks))

    def test_blank_lines_do_not_count_against_limit(self):
        decoder = EventStreamDecoder(max_buffer=32)
        assert decoder.feed(b"\n" * 100 + sse_frame({"n": 1})) == [{"n": 1}]
