"""Conversation store interface.

The store is an external collaborator (a document store in production).
'ConversationStore' is the narrow contract the continuity pipeline needs;
concrete backends are interchangeable at construction time.
"""

from abc import ABC, abstractmethod

from avatar_console.storage.models import Conversation, KnowledgeBase, Message


class ConversationStore(ABC):
    """Abstract repository for conversations, knowledge bases and messages."""

    @abstractmethod
    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        pass

    @abstractmethod
    async def save_conversation(self, conversation: Conversation) -> Conversation:
        pass

    @abstractmethod
    async def get_knowledge_base(self, knowledge_base_id: str) -> KnowledgeBase | None:
        pass

    @abstractmethod
    async def save_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        pass

    @abstractmethod
    async def list_messages(self, conversation_id: str) -> list[Message]:
        """Messages of a conversation, timestamp ascending."""

    @abstractmethod
    async def add_message(self, conversation_id: str, message: Message) -> Message:
        """Append a message. The log is append-only."""
