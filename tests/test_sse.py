"""Tests for SSE framing, event constructors and incremental decoding."""

import json

from article_engine.core.sse import (
    TERMINAL_EVENTS,
    SSEDecoder,
    complete_event,
    created_event,
    error_event,
    milestone,
    progress_event,
    sse_event,
    token_event,
)


def test_sse_event_frames_one_json_object():
    frame = sse_event({"type": "token", "content": "hi"})

    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    assert json.loads(frame[6:].strip()) == {"type": "token", "content": "hi"}


def test_created_event_keys():
    assert created_event("outline", "o-1") == {"type": "outline_created", "outlineId": "o-1"}
    assert created_event("article", "a-1") == {"type": "article_created", "articleId": "a-1"}


def test_complete_event_is_full_progress():
    event = complete_event(article={"id": "a"})

    assert event["type"] == "complete"
    assert event["progress"] == 100
    assert event["type"] in TERMINAL_EVENTS


def test_error_event_details_optional():
    assert error_event("Outline generation failed") == {"type": "error", "message": "Outline generation failed"}
    assert error_event("x", details="boom")["details"] == "boom"


def test_token_event_section_index():
    assert "sectionIndex" not in token_event("a", "hook")
    assert token_event("a", "section", section_index=2)["sectionIndex"] == 2


def test_progress_event_extra_fields():
    event = progress_event("section", "Writing section 1", 26, section=1, total=5)

    assert event["progress"] == 26
    assert event["total"] == 5


class TestMilestone:
    def test_writer_sections(self):
        assert [milestone(10, 80, i, 5) for i in range(5)] == [10, 26, 42, 58, 74]

    def test_rounds_half_up(self):
        assert milestone(60, 30, 1, 4) == 68

    def test_empty_total(self):
        assert milestone(60, 30, 0, 0) == 60


class TestSSEDecoder:
    def test_event_split_across_chunks(self):
        decoder = SSEDecoder()
        frame = sse_event({"type": "token", "content": "hello"})

        assert decoder.feed(frame[:10]) == []
        assert decoder.feed(frame[10:]) == [{"type": "token", "content": "hello"}]

    def test_multiple_events_in_one_chunk(self):
        decoder = SSEDecoder()
        chunk = sse_event({"type": "progress", "progress": 10}) + sse_event({"type": "complete"})

        events = decoder.feed(chunk)

        assert [e["type"] for e in events] == ["progress", "complete"]

    def test_malformed_line_is_skipped(self):
        decoder = SSEDecoder()

        events = decoder.feed("data: {not json}\n\n" + sse_event({"type": "token"}))

        assert events == [{"type": "token"}]

    def test_flush_returns_unterminated_event(self):
        decoder = SSEDecoder()
        decoder.feed('data: {"type": "complete"}')

        assert decoder.flush() == [{"type": "complete"}]
