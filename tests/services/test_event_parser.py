"""Tests for mapping raw frames to typed stream events."""

from __future__ import annotations

import logging

import pytest

from insight_stream.schemas.stream_events import (
    ChunkEvent,
    CompleteEvent,
    EndEvent,
    ErrorEvent,
    StageEvent,
)
from insight_stream.services.analysis_stream.parser import parse_frame, split_frame


class TestSplitFrame:
    def test_event_name_defaults_to_message(self) -> None:
        raw = split_frame('data: {"text":"hi"}')

        assert raw.event == "message"
        assert raw.data == '{"text":"hi"}'

    def test_multiple_data_lines_are_joined_with_newlines(self) -> None:
        raw = split_frame('event: complete\ndata: {"text":\ndata: "a"}')

        assert raw.event == "complete"
        assert raw.data == '{"text":\n"a"}'

    def test_prefix_without_space_and_comment_lines(self) -> None:
        raw = split_frame(': keep-alive\nevent:chunk\ndata:{"text":"x"}')

        assert raw.event == "chunk"
        assert raw.data == '{"text":"x"}'


class TestParseFrame:
    def test_stage_event(self) -> None:
        event = parse_frame('event: stage\ndata: {"id":"request","status":"active"}')

        assert event == StageEvent(stage_id="request", status="active")

    def test_chunk_event(self) -> None:
        event = parse_frame('event: chunk\ndata: {"text":"Hello"}')

        assert isinstance(event, ChunkEvent)
        assert event.text == "Hello"

    def test_complete_event_with_and_without_metadata(self) -> None:
        with_meta = parse_frame(
            'event: complete\ndata: {"text":"done","metadata":{"model":"m1"}}'
        )
        without_meta = parse_frame('event: complete\ndata: {"text":"done"}')

        assert with_meta == CompleteEvent(text="done", metadata={"model": "m1"})
        assert isinstance(without_meta, CompleteEvent)
        assert without_meta.metadata is None

    def test_error_event_message_passes_through(self) -> None:
        event = parse_frame('event: error\ndata: {"message":"Quota exceeded"}')

        assert event == ErrorEvent(message="Quota exceeded")

    def test_error_event_without_message_gets_default(self) -> None:
        event = parse_frame("event: error\ndata: {}")

        assert isinstance(event, ErrorEvent)
        assert event.message == "Streaming analysis failed"

    def test_end_event(self) -> None:
        assert isinstance(parse_frame("event: end\ndata: {}"), EndEvent)

    def test_malformed_json_is_dropped_and_logged(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            event = parse_frame('event: chunk\ndata: {"text": "unterminated')

        assert event is None
        assert "malformed JSON" in caplog.text

    @pytest.mark.parametrize(
        "frame",
        [
            'event: stage\ndata: {"id":"prepare","status":"finished"}',
            'event: stage\ndata: {"status":"active"}',
            "event: complete\ndata: {}",
            'event: chunk\ndata: ["not", "an", "object"]',
        ],
    )
    def test_payload_not_matching_its_event_is_dropped(self, frame: str) -> None:
        assert parse_frame(frame) is None

    def test_unknown_event_name_is_ignored(self) -> None:
        assert parse_frame('event: heartbeat\ndata: {"ts": 1}') is None

    def test_default_message_event_is_not_a_stream_event(self) -> None:
        assert parse_frame('data: {"text":"orphan"}') is None

    def test_frame_without_data_is_skipped(self) -> None:
        assert parse_frame("event: end") is None


def test_events_serialize_to_parseable_frames() -> None:
    event = StageEvent(stage_id="render", status="completed")

    wire = event.to_sse()

    assert wire == 'event: stage\ndata: {"id":"render","status":"completed"}\n\n'
    assert parse_frame(wire.strip()) == event
