"""Tests for streaming event parsing."""

import pytest

from avatar_console.exceptions import MalformedEventError
from avatar_console.streaming.events import (
    Channel,
    StreamEventType,
    parse_stream_event,
)


class TestChannel:
    """Tests for Channel -> role mapping."""

    def test_roles(self):
        assert Channel.USER.role == "user"
        assert Channel.AVATAR.role == "assistant"


class TestParseStreamEvent:
    """Tests for parse_stream_event()."""

    @pytest.mark.parametrize(
        "event_type,channel",
        [("user_talking_message", Channel.USER), ("avatar_talking_message", Channel.AVATAR)],
    )
    def test_fragment_events(self, event_type, channel):
        """Talking messages carry a non-final fragment."""
        event = parse_stream_event({"type": event_type, "detail": {"message": "hello"}})

        assert event.is_transcript
        assert event.fragment.channel is channel
        assert event.fragment.text == "hello"
        assert event.fragment.is_final is False

    @pytest.mark.parametrize(
        "event_type,channel",
        [("user_end_message", Channel.USER), ("avatar_end_message", Channel.AVATAR)],
    )
    def test_boundary_events(self, event_type, channel):
        """End messages are final boundaries with no text."""
        event = parse_stream_event({"type": event_type})

        assert event.fragment.channel is channel
        assert event.fragment.is_final is True
        assert event.fragment.text == ""

    def test_empty_fragment_text_allowed(self):
        """An empty string is still a valid fragment."""
        event = parse_stream_event({"type": "user_talking_message", "detail": {"message": ""}})
        assert event.fragment.text == ""

    @pytest.mark.parametrize(
        "event_type",
        ["stream_ready", "stream_disconnected", "user_start", "avatar_stop_talking"],
    )
    def test_lifecycle_and_informational_events(self, event_type):
        """Non-transcript events have no fragment."""
        event = parse_stream_event({"type": event_type})

        assert event.type is StreamEventType(event_type)
        assert event.is_transcript is False

    @pytest.mark.parametrize(
        "raw",
        [
            "user_talking_message",
            ["user_end_message"],
            {},
            {"type": 42},
            {"type": "avatar_dancing"},
            {"type": "user_talking_message"},
            {"type": "user_talking_message", "detail": "hi"},
            {"type": "avatar_talking_message", "detail": {"message": None}},
        ],
    )
    def test_malformed_events(self, raw):
        """Wrong shapes, unknown types and missing fields raise."""
        with pytest.raises(MalformedEventError):
            parse_stream_event(raw)

    def test_unknown_type_recorded(self):
        """The offending type is kept on the error."""
        with pytest.raises(MalformedEventError) as exc_info:
            parse_stream_event({"type": "avatar_dancing"})

        assert exc_info.value.event_type == "avatar_dancing"
        assert exc_info.value.details["event_type"] == "avatar_dancing"
