"""Storage module - conversation records and store backends."""

from avatar_console.storage.base import ConversationStore
from avatar_console.storage.memory import InMemoryConversationStore
from avatar_console.storage.models import (
    VALID_ROLES,
    Conversation,
    ConversationStatus,
    KnowledgeBase,
    Message,
)

__all__ = [
    "ConversationStore",
    "InMemoryConversationStore",
    "Conversation",
    "ConversationStatus",
    "KnowledgeBase",
    "Message",
    "VALID_ROLES",
]
