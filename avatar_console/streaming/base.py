"""Streaming Client Interface - outbound contract of the avatar service.

A live session needs three calls: a one-time access token, opening the
streaming session with its instruction payload, and closing it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from avatar_console.storage.models import Conversation, KnowledgeBase


@dataclass(frozen=True)
class VoiceSettings:
    """Voice configuration sent with a session start."""

    voice_id: str | None = None
    rate: float = 1.5
    emotion: str = "excited"
    model: str = "eleven_flash_v2_5"

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "rate": self.rate,
            "emotion": self.emotion,
            "model": self.model,
        }
        if self.voice_id:
            payload["voice_id"] = self.voice_id
        return payload


@dataclass(frozen=True)
class StartSessionRequest:
    """Everything the streaming service needs to start an avatar session.

    knowledge_base is the instruction text. knowledge_id is only set when
    the text is the knowledge base's own base prompt, never alongside a
    composed session context.
    """

    avatar_id: str
    knowledge_base: str
    language: str = "en"
    voice: VoiceSettings = field(default_factory=VoiceSettings)
    knowledge_id: str | None = None
    quality: str = "low"

    def __post_init__(self) -> None:
        if not self.avatar_id:
            raise ValueError("avatar_id is required")
        if not self.knowledge_base:
            raise ValueError("knowledge_base instruction payload is required")

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "avatar_name": self.avatar_id,
            "quality": self.quality,
            "language": self.language,
            "voice": self.voice.to_payload(),
            "knowledge_base": self.knowledge_base,
            "version": "v2",
        }
        if self.knowledge_id:
            payload["knowledge_base_id"] = self.knowledge_id
        return payload


def build_start_request(
    conversation: Conversation,
    knowledge_base: KnowledgeBase,
    default_language: str = "en",
) -> StartSessionRequest:
    """Build the start request for a conversation.

    Uses the conversation's session context when present; otherwise the
    knowledge base's base prompt and reference id.
    """
    voice = VoiceSettings(voice_id=conversation.voice_id)
    language = conversation.language or default_language

    if conversation.session_context:
        return StartSessionRequest(
            avatar_id=conversation.avatar_id,
            knowledge_base=conversation.session_context,
            language=language,
            voice=voice,
        )

    return StartSessionRequest(
        avatar_id=conversation.avatar_id,
        knowledge_base=knowledge_base.base_prompt,
        knowledge_id=knowledge_base.id,
        language=language,
        voice=voice,
    )


@dataclass
class StreamingSessionHandle:
    """Remote session opened on the streaming service."""

    session_id: str
    url: str | None = None
    access_token: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class StreamingClient(ABC):
    """Abstract client for the avatar streaming service."""

    @abstractmethod
    async def create_token(self) -> str:
        """Request a one-time access token."""

    @abstractmethod
    async def open_session(
        self,
        request: StartSessionRequest,
        token: str,
    ) -> StreamingSessionHandle:
        """Open and start a streaming session."""

    @abstractmethod
    async def close_session(self, handle: StreamingSessionHandle) -> None:
        """Stop a streaming session."""

    async def aclose(self) -> None:
        """Release client resources."""
        return None
