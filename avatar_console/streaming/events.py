"""Streaming Events - inbound event contract of the avatar streaming service.

Events arrive as JSON objects:

    {"type": "user_talking_message", "detail": {"message": "I like"}}
    {"type": "user_end_message"}
    {"type": "stream_disconnected"}

Fragment events carry a non-final piece of an utterance; end-message events
are the final boundary of an utterance on their channel.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from avatar_console.exceptions import MalformedEventError


class Channel(Enum):
    """Independent transcript sources of a live session."""

    USER = "user"
    AVATAR = "avatar"

    @property
    def role(self) -> str:
        """Message role an utterance on this channel is stored under."""
        return "user" if self is Channel.USER else "assistant"


class StreamEventType(Enum):
    """Event types emitted by the streaming service."""

    STREAM_READY = "stream_ready"
    STREAM_DISCONNECTED = "stream_disconnected"
    USER_TALKING_MESSAGE = "user_talking_message"
    USER_END_MESSAGE = "user_end_message"
    AVATAR_TALKING_MESSAGE = "avatar_talking_message"
    AVATAR_END_MESSAGE = "avatar_end_message"
    # Informational, no effect on the transcript
    USER_START = "user_start"
    USER_STOP = "user_stop"
    AVATAR_START_TALKING = "avatar_start_talking"
    AVATAR_STOP_TALKING = "avatar_stop_talking"


FRAGMENT_EVENTS: dict[StreamEventType, Channel] = {
    StreamEventType.USER_TALKING_MESSAGE: Channel.USER,
    StreamEventType.AVATAR_TALKING_MESSAGE: Channel.AVATAR,
}

BOUNDARY_EVENTS: dict[StreamEventType, Channel] = {
    StreamEventType.USER_END_MESSAGE: Channel.USER,
    StreamEventType.AVATAR_END_MESSAGE: Channel.AVATAR,
}


@dataclass(frozen=True)
class PartialFragment:
    """A piece of an in-progress utterance, or its final boundary."""

    channel: Channel
    text: str
    is_final: bool = False


@dataclass(frozen=True)
class StreamEvent:
    """A parsed streaming event."""

    type: StreamEventType
    fragment: PartialFragment | None = None

    @property
    def is_transcript(self) -> bool:
        return self.fragment is not None


def parse_stream_event(raw: Any) -> StreamEvent:
    """Parse a raw event object.

    Args:
        raw: Decoded JSON event

    Returns:
        StreamEvent, with a PartialFragment for fragment and boundary events

    Raises:
        MalformedEventError: If the type is missing/unknown or a fragment
            event has no message text
    """
    if not isinstance(raw, dict):
        raise MalformedEventError(f"expected an object, got {type(raw).__name__}")

    raw_type = raw.get("type")
    if not isinstance(raw_type, str):
        raise MalformedEventError("missing event type")

    try:
        event_type = StreamEventType(raw_type)
    except ValueError:
        raise MalformedEventError("unknown event type", event_type=raw_type)

    if event_type in FRAGMENT_EVENTS:
        detail = raw.get("detail")
        text = detail.get("message") if isinstance(detail, dict) else None
        if not isinstance(text, str):
            raise MalformedEventError("fragment without detail.message", event_type=raw_type)
        return StreamEvent(
            type=event_type,
            fragment=PartialFragment(channel=FRAGMENT_EVENTS[event_type], text=text),
        )

    if event_type in BOUNDARY_EVENTS:
        return StreamEvent(
            type=event_type,
            fragment=PartialFragment(
                channel=BOUNDARY_EVENTS[event_type], text="", is_final=True
            ),
        )

    return StreamEvent(type=event_type)
