"""Conversation records read and written by the continuity pipeline.

Only the fields the pipeline touches are modelled; user accounts and
knowledge-base editing live with the external store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

Role = Literal["user", "assistant"]
VALID_ROLES: tuple[str, ...] = ("user", "assistant")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a record identifier."""
    return uuid.uuid4().hex


class ConversationStatus(Enum):
    """Conversation status."""

    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class Message:
    """One finalized utterance. Never mutated once created."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class KnowledgeBase:
    """Instructions an avatar session is grounded on."""

    id: str
    name: str
    base_prompt: str
    welcome_message: str = ""

    def __post_init__(self) -> None:
        if not self.base_prompt:
            raise ValueError("KnowledgeBase.base_prompt must not be empty")


@dataclass
class Conversation:
    """A conversation owned by one user and bound to one knowledge base."""

    id: str
    owner_id: str
    knowledge_base_id: str
    avatar_id: str
    title: str = ""
    voice_id: str | None = None
    language: str | None = None
    status: ConversationStatus = ConversationStatus.ACTIVE
    session_context: str = ""
    conversation_summary: str = ""
    created_at: datetime = field(default_factory=utc_now)
    last_message_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "avatar_id": self.avatar_id,
            "voice_id": self.voice_id,
            "language": self.language,
            "knowledge_base_id": self.knowledge_base_id,
            "status": self.status.value,
            "session_context": self.session_context,
            "conversation_summary": self.conversation_summary,
            "created_at": self.created_at.isoformat(),
            "last_message_at": self.last_message_at.isoformat(),
        }
