"""Conversation API Routes - continue, append and end.

- Get a conversation with its messages
- Continue: recompute the session context from the full log
- Append a message
- End: archive a summary and mark completed
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from avatar_console.api.auth import get_caller_id, verify_api_key
from avatar_console.api.dependencies import get_orchestrator
from avatar_console.orchestrator.conversation import ConversationOrchestrator

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
    dependencies=[Depends(verify_api_key)],
)


class AppendMessageRequest(BaseModel):
    """Message to append to a conversation."""

    role: str = Field(..., description="user or assistant")
    content: str = Field(..., description="Message text")


class ConversationResponse(BaseModel):
    conversation: dict[str, Any]
    messages: list[dict[str, Any]]


class ContinueResponse(ConversationResponse):
    summary: str


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    caller_id: str = Depends(get_caller_id),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> ConversationResponse:
    """Conversation and its message log."""
    conversation, messages = await orchestrator.get_conversation(conversation_id, caller_id)
    return ConversationResponse(
        conversation=conversation.to_dict(),
        messages=[m.to_dict() for m in messages],
    )


@router.post("/{conversation_id}/continue", response_model=ContinueResponse)
async def continue_conversation(
    conversation_id: str,
    caller_id: str = Depends(get_caller_id),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> ContinueResponse:
    """Summarize the log and prepare the context for the next session."""
    result = await orchestrator.continue_conversation(conversation_id, caller_id)
    return ContinueResponse(
        conversation=result.conversation.to_dict(),
        messages=[m.to_dict() for m in result.messages],
        summary=result.summary,
    )


@router.post(
    "/{conversation_id}/messages",
    status_code=status.HTTP_201_CREATED,
)
async def append_message(
    conversation_id: str,
    request: AppendMessageRequest,
    caller_id: str = Depends(get_caller_id),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Append one message to the log."""
    message = await orchestrator.append_message(
        conversation_id, request.role, request.content, caller_id
    )
    return {"message": message.to_dict()}


@router.post("/{conversation_id}/end")
async def end_conversation(
    conversation_id: str,
    caller_id: str = Depends(get_caller_id),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    """Archive a summary and mark the conversation completed."""
    conversation = await orchestrator.end_conversation(conversation_id, caller_id)
    return {"conversation": conversation.to_dict()}
