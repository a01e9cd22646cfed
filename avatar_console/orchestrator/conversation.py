"""Conversation Orchestrator - continue / end / append on stored conversations.

The only component that writes a conversation's session_context,
conversation_summary and status.

Two locks per conversation:
- lifecycle: held by Continue and End across load-summarize-write, so
  they never interleave with each other
- record: held only around a read-modify-write of the conversation
  record, shared with message appends

Appends never wait on a summary. Writers reload the record under the
record lock, so none of them overwrites another's fields.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

from avatar_console.exceptions import (
    ConversationNotFoundError,
    InvalidMessageError,
    KnowledgeBaseNotFoundError,
)
from avatar_console.observability.logging import get_logger
from avatar_console.orchestrator.context import compose_session_context
from avatar_console.orchestrator.summarizer import Summarizer
from avatar_console.storage.base import ConversationStore
from avatar_console.storage.models import (
    VALID_ROLES,
    Conversation,
    ConversationStatus,
    KnowledgeBase,
    Message,
    utc_now,
)
from avatar_console.streaming.base import StartSessionRequest, build_start_request

logger = get_logger(__name__)


@dataclass
class ContinuationResult:
    """Outcome of continuing a conversation."""

    conversation: Conversation
    messages: list[Message]
    summary: str


@dataclass
class _ConversationLocks:
    lifecycle: asyncio.Lock = field(default_factory=asyncio.Lock)
    record: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0  # Tasks holding or waiting on either lock


class ConversationOrchestrator:
    """Load log -> summarize -> compose -> persist.

    Usage:
        orchestrator = ConversationOrchestrator(store, Summarizer(client))
        result = await orchestrator.continue_conversation("conv-1", caller_id="user-1")
        request = await orchestrator.session_request("conv-1", caller_id="user-1")
    """

    def __init__(
        self,
        store: ConversationStore,
        summarizer: Summarizer,
        default_language: str = "en",
    ) -> None:
        self._store = store
        self._summarizer = summarizer
        self._default_language = default_language
        self._locks: dict[str, _ConversationLocks] = {}

    @property
    def store(self) -> ConversationStore:
        return self._store

    @property
    def tracked_conversations(self) -> int:
        """Conversations with a lock entry (in use right now)."""
        return len(self._locks)

    @asynccontextmanager
    async def _locked(self, conversation_id: str, kind: str) -> AsyncIterator[None]:
        """Hold the lifecycle or record lock of a conversation.

        The entry is dropped when its last holder leaves.
        """
        locks = self._locks.get(conversation_id)
        if locks is None:
            locks = self._locks[conversation_id] = _ConversationLocks()
        locks.holders += 1
        try:
            async with getattr(locks, kind):
                yield
        finally:
            locks.holders -= 1
            if locks.holders == 0:
                del self._locks[conversation_id]

    async def _load_owned(self, conversation_id: str, caller_id: str) -> Conversation:
        """Missing and not-owned are indistinguishable to the caller."""
        conversation = await self._store.get_conversation(conversation_id)
        if conversation is None or conversation.owner_id != caller_id:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def _load_knowledge_base(self, conversation: Conversation) -> KnowledgeBase:
        knowledge_base = await self._store.get_knowledge_base(conversation.knowledge_base_id)
        if knowledge_base is None:
            raise KnowledgeBaseNotFoundError(conversation.knowledge_base_id)
        return knowledge_base

    async def get_conversation(
        self,
        conversation_id: str,
        caller_id: str,
    ) -> tuple[Conversation, list[Message]]:
        """Conversation and its message log.

        An active conversation that was never continued reports the
        knowledge base's base prompt as its session context.
        """
        conversation = await self._load_owned(conversation_id, caller_id)
        if conversation.status is ConversationStatus.ACTIVE and not conversation.session_context:
            knowledge_base = await self._load_knowledge_base(conversation)
            conversation.session_context = knowledge_base.base_prompt
        messages = await self._store.list_messages(conversation_id)
        return conversation, messages

    async def continue_conversation(
        self,
        conversation_id: str,
        caller_id: str,
    ) -> ContinuationResult:
        """Recompute the session context from the full log and reactivate.

        Raises:
            ConversationNotFoundError: Missing or not owned by caller
            KnowledgeBaseNotFoundError: Referenced knowledge base is missing
        """
        async with self._locked(conversation_id, "lifecycle"):
            conversation = await self._load_owned(conversation_id, caller_id)
            knowledge_base = await self._load_knowledge_base(conversation)
            messages = await self._store.list_messages(conversation_id)

            summary = await self._summarizer.summarize(messages, conversation_id)
            session_context = compose_session_context(knowledge_base.base_prompt, summary)

            async with self._locked(conversation_id, "record"):
                conversation = await self._load_owned(conversation_id, caller_id)
                conversation.session_context = session_context
                conversation.status = ConversationStatus.ACTIVE
                await self._store.save_conversation(conversation)

        logger.info(
            "conversation_continued",
            conversation_id=conversation_id,
            message_count=len(messages),
            has_summary=bool(summary),
        )
        return ContinuationResult(conversation=conversation, messages=messages, summary=summary)

    async def end_conversation(self, conversation_id: str, caller_id: str) -> Conversation:
        """Archive a summary and mark the conversation completed.

        session_context is left as it was.
        """
        async with self._locked(conversation_id, "lifecycle"):
            await self._load_owned(conversation_id, caller_id)
            messages = await self._store.list_messages(conversation_id)

            summary = await self._summarizer.summarize(messages, conversation_id)

            async with self._locked(conversation_id, "record"):
                conversation = await self._load_owned(conversation_id, caller_id)
                conversation.conversation_summary = summary
                conversation.status = ConversationStatus.COMPLETED
                conversation.last_message_at = utc_now()
                await self._store.save_conversation(conversation)

        logger.info(
            "conversation_ended",
            conversation_id=conversation_id,
            message_count=len(messages),
        )
        return conversation

    async def append_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        caller_id: str,
    ) -> Message:
        """Validate and persist one message from the caller.

        Raises:
            ConversationNotFoundError: Missing or not owned by caller
            InvalidMessageError: Unknown role or empty content
        """
        if role not in VALID_ROLES:
            raise InvalidMessageError(f"role must be one of {', '.join(VALID_ROLES)}")
        if not content or not content.strip():
            raise InvalidMessageError("content must not be empty")

        async with self._locked(conversation_id, "record"):
            conversation = await self._load_owned(conversation_id, caller_id)
            message = Message(role=role, content=content)
            await self._persist(conversation, message)
        return message

    async def record_message(self, conversation_id: str, message: Message) -> Message:
        """Persist a message emitted by a live session.

        Raises:
            ConversationNotFoundError: If the conversation no longer exists
        """
        async with self._locked(conversation_id, "record"):
            conversation = await self._store.get_conversation(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(conversation_id)
            await self._persist(conversation, message)
        return message

    def message_sink(self, conversation_id: str):
        """Bind record_message to a conversation for a live session."""

        async def sink(message: Message) -> None:
            await self.record_message(conversation_id, message)

        return sink

    async def session_request(
        self,
        conversation_id: str,
        caller_id: str,
    ) -> StartSessionRequest:
        """Start request for the next streaming session of a conversation."""
        conversation = await self._load_owned(conversation_id, caller_id)
        knowledge_base = await self._load_knowledge_base(conversation)
        return build_start_request(conversation, knowledge_base, self._default_language)

    async def _persist(self, conversation: Conversation, message: Message) -> None:
        await self._store.add_message(conversation.id, message)
        conversation.last_message_at = message.timestamp
        await self._store.save_conversation(conversation)
