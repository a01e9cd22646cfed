"""In-memory conversation store for development and tests."""

import copy

from avatar_console.storage.base import ConversationStore
from avatar_console.storage.models import Conversation, KnowledgeBase, Message


class InMemoryConversationStore(ConversationStore):
    """Dict-backed store.

    Conversations are copied on the way in and out, so a caller holding a
    record cannot change stored state without calling save_conversation.
    Messages and knowledge bases are frozen and shared as-is.
    """

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._knowledge_bases: dict[str, KnowledgeBase] = {}
        self._messages: dict[str, list[Message]] = {}

    async def get_conversation(self, conversation_id: str) -> Conversation | None:
        conversation = self._conversations.get(conversation_id)
        return copy.copy(conversation) if conversation else None

    async def save_conversation(self, conversation: Conversation) -> Conversation:
        self._conversations[conversation.id] = copy.copy(conversation)
        self._messages.setdefault(conversation.id, [])
        return conversation

    async def get_knowledge_base(self, knowledge_base_id: str) -> KnowledgeBase | None:
        return self._knowledge_bases.get(knowledge_base_id)

    async def save_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        self._knowledge_bases[knowledge_base.id] = knowledge_base
        return knowledge_base

    async def list_messages(self, conversation_id: str) -> list[Message]:
        # sorted() is stable: equal timestamps keep insertion order
        return sorted(self._messages.get(conversation_id, []), key=lambda m: m.timestamp)

    async def add_message(self, conversation_id: str, message: Message) -> Message:
        self._messages.setdefault(conversation_id, []).append(message)
        return message
