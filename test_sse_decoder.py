#!/usr/bin/env python3
"""
Tests for event-stream frame decoding and payload interpretation.
"""

import pytest

from openai_sse.llm.exceptions import DecodeError, TransportError
from openai_sse.llm.streaming.models import (
    DataEvent,
    MalformedPayloadEvent,
    SSEFrame,
    TerminalEvent,
)
from openai_sse.llm.streaming.parser import (
    SSEDecoder,
    interpret_payload,
    iter_stream_events,
)


class TestSSEDecoder:
    """Test frame splitting and field handling."""

    def test_single_frame(self):
        decoder = SSEDecoder()
        frames = decoder.feed('data: {"id":1}\n\n')
        assert frames == [SSEFrame(data='{"id":1}')]

    def test_multiple_frames_in_one_read_keep_order(self):
        decoder = SSEDecoder()
        frames = decoder.feed("data: a\n\ndata: b\n\ndata: c\n\n")
        assert [f.data for f in frames] == ["a", "b", "c"]

    def test_frame_split_across_reads(self):
        decoder = SSEDecoder()
        assert decoder.feed("da") == []
        assert decoder.feed('ta: {"id"') == []
        assert decoder.feed(":1}\n") == []
        frames = decoder.feed("\n")
        assert [f.data for f in frames] == ['{"id":1}']

    def test_crlf_split_between_reads(self):
        """A CR at the end of one read followed by LF is one line ending."""
        decoder = SSEDecoder()
        assert decoder.feed("data: x\r") == []
        assert decoder.feed("\n\r\n") == [SSEFrame(data="x")]

    def test_bare_cr_line_endings(self):
        decoder = SSEDecoder()
        frames = decoder.feed("data: one\r\rdata: two\r\r")
        assert [f.data for f in frames] == ["one"]
        # the final "\r" is held until more text or flush
        assert [f.data for f in decoder.flush()] == ["two"]

    def test_multiline_data_joined_with_newline(self):
        decoder = SSEDecoder()
        frames = decoder.feed("data: first\ndata: second\n\n")
        assert frames[0].data == "first\nsecond"

    def test_event_and_id_fields(self):
        decoder = SSEDecoder()
        frames = decoder.feed("event: thread.run.created\nid: 42\ndata: {}\n\n")
        assert frames == [SSEFrame(data="{}", event="thread.run.created", id="42")]
        assert decoder.last_event_id == "42"

        # event name resets per frame, id persists
        frames = decoder.feed("data: {}\n\n")
        assert frames == [SSEFrame(data="{}", event="message", id="42")]

    def test_comments_and_unknown_fields_ignored(self):
        decoder = SSEDecoder()
        frames = decoder.feed(": keep-alive\nretry: 1000\nfoo: bar\ndata: x\n\n")
        assert [f.data for f in frames] == ["x"]

    def test_frames_without_data_not_emitted(self):
        decoder = SSEDecoder()
        assert decoder.feed(": ping\n\nevent: noop\n\n") == []

    def test_value_without_space_and_field_without_colon(self):
        decoder = SSEDecoder()
        frames = decoder.feed("data:tight\ndata\n\n")
        assert frames[0].data == "tight\n"

    def test_only_one_leading_space_stripped(self):
        decoder = SSEDecoder()
        frames = decoder.feed("data:  padded\n\n")
        assert frames[0].data == " padded"

    def test_flush_emits_final_frame_without_blank_line(self):
        decoder = SSEDecoder()
        assert decoder.feed('data: {"id":1}\n\ndata: [DONE]') == [
            SSEFrame(data='{"id":1}')
        ]
        assert decoder.flush() == [SSEFrame(data="[DONE]")]

    def test_flush_with_pending_complete_line(self):
        decoder = SSEDecoder()
        decoder.feed("data: tail\n")
        assert decoder.flush() == [SSEFrame(data="tail")]
        assert decoder.flush() == []

    def test_multibyte_text(self):
        decoder = SSEDecoder()
        frames = decoder.feed('data: {"content":"héllo ☃"}\n\n')
        assert frames[0].data == '{"content":"héllo ☃"}'


class TestInterpretPayload:
    """Test sentinel, data and malformed classification."""

    def test_sentinel(self):
        assert interpret_payload("[DONE]") == TerminalEvent()
        assert interpret_payload(" [DONE] ") == TerminalEvent()

    def test_json_payload(self):
        event = interpret_payload('{"id":1}')
        assert event == DataEvent(payload='{"id":1}', value={"id": 1})

    def test_non_object_json_is_data(self):
        assert interpret_payload("3") == DataEvent(payload="3", value=3)

    @pytest.mark.parametrize("payload", ["", "   ", "\n"])
    def test_whitespace_is_ignored(self, payload):
        assert interpret_payload(payload) is None

    def test_malformed_payload(self):
        event = interpret_payload("{bad json")
        assert isinstance(event, MalformedPayloadEvent)
        assert event.raw == "{bad json"
        assert event.cause

    def test_deeply_nested_payload_is_malformed(self):
        event = interpret_payload("[" * 200000)
        assert isinstance(event, MalformedPayloadEvent)
        assert event.cause

    def test_decode_error_message_embeds_payload_and_cause(self):
        event = interpret_payload("{bad json")
        error = DecodeError(event.raw, event.cause)
        assert "{bad json" in str(error)
        assert event.cause in str(error)
        assert error.raw_payload == "{bad json"


class FakeResponse:
    """Minimal stand-in exposing aiter_text()."""

    def __init__(self, chunks, error=None):
        self.chunks = chunks
        self.error = error

    async def aiter_text(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error


class TestIterStreamEvents:
    """Test the response-to-event pipeline."""

    @pytest.mark.asyncio
    async def test_events_in_arrival_order(self):
        response = FakeResponse([
            'data: {"id":1}\n\nda',
            'ta: {"id":2}\n\n: comment\n\n',
            "data: [DONE]\n\n",
        ])
        events = [event async for event in iter_stream_events(response)]
        assert events == [
            DataEvent('{"id":1}', {"id": 1}),
            DataEvent('{"id":2}', {"id": 2}),
            TerminalEvent(),
        ]

    @pytest.mark.asyncio
    async def test_trailing_frame_flushed_at_end(self):
        response = FakeResponse(['data: {"id":1}\n\n', "data: [DONE]"])
        events = [event async for event in iter_stream_events(response)]
        assert events[-1] == TerminalEvent()

    @pytest.mark.asyncio
    async def test_padding_frames_skipped(self):
        response = FakeResponse(["data: \n\n", "data: [DONE]\n\n"])
        events = [event async for event in iter_stream_events(response)]
        assert events == [TerminalEvent()]

    @pytest.mark.asyncio
    async def test_read_failure_raises_transport_error(self):
        import httpx

        response = FakeResponse(['data: {"id":1}\n\n'], error=httpx.ReadError("reset"))
        seen = []
        with pytest.raises(TransportError, match="reset"):
            async for event in iter_stream_events(response):
                seen.append(event)
        assert seen == [DataEvent('{"id":1}', {"id": 1})]

    @pytest.mark.asyncio
    async def test_closed_body_raises_transport_error(self):
        import httpx

        response = FakeResponse([], error=httpx.StreamClosed())
        with pytest.raises(TransportError):
            async for _ in iter_stream_events(response):
                pass
