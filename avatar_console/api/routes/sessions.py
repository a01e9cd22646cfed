"""Session API Routes - live avatar streaming sessions.

Provides endpoints for the operator console:
- Start a live session for a conversation
- Get session status
- Stop a session (flushes in-progress utterances)
- Relay streaming events into the session (HTTP or WebSocket)
"""

import json
from typing import Any

from fastapi import APIRouter, Body, Depends, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, Field

from avatar_console.api.auth import get_caller_id, verify_api_key, websocket_authorized
from avatar_console.api.dependencies import (
    get_orchestrator,
    get_session_manager,
    get_streaming_client,
)
from avatar_console.config.settings import get_settings
from avatar_console.exceptions import SessionNotFoundError
from avatar_console.observability.logging import get_logger
from avatar_console.orchestrator.conversation import ConversationOrchestrator
from avatar_console.orchestrator.session import LiveSession, SessionManager
from avatar_console.streaming import StreamingClient

logger = get_logger(__name__)

router = APIRouter(
    prefix="/sessions",
    tags=["sessions"],
    dependencies=[Depends(verify_api_key)],
)


class CreateSessionRequest(BaseModel):
    """Request to start a live session."""

    conversation_id: str = Field(..., description="Conversation to stream")


class CreateSessionResponse(BaseModel):
    """Session started; the UI connects to the stream with url/access_token."""

    session_id: str
    conversation_id: str
    state: str
    remote_session_id: str
    url: str | None = None
    access_token: str | None = None


class SessionStatusResponse(BaseModel):
    session_id: str
    conversation_id: str
    state: str
    is_running: bool
    messages_emitted: int


def _owned_session(manager: SessionManager, session_id: str, caller_id: str) -> LiveSession:
    session = manager.get_session(session_id)
    if session is None or session.owner_id != caller_id:
        raise SessionNotFoundError(session_id)
    return session


@router.post("", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    caller_id: str = Depends(get_caller_id),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    manager: SessionManager = Depends(get_session_manager),
    streaming_client: StreamingClient = Depends(get_streaming_client),
) -> CreateSessionResponse:
    """Start a live session with the conversation's current context."""
    start_request = await orchestrator.session_request(request.conversation_id, caller_id)

    async def release(session: LiveSession) -> None:
        await manager.remove_session(session.session_id)

    session = await manager.create_session(
        conversation_id=request.conversation_id,
        streaming_client=streaming_client,
        on_message=orchestrator.message_sink(request.conversation_id),
        owner_id=caller_id,
        on_disconnect=release,
    )

    try:
        handle = await session.start(start_request)
    except BaseException:
        await manager.remove_session(session.session_id)
        raise

    return CreateSessionResponse(
        session_id=session.session_id,
        conversation_id=session.conversation_id,
        state=session.state.value,
        remote_session_id=handle.session_id,
        url=handle.url,
        access_token=handle.access_token,
    )


@router.get("")
async def list_sessions(
    caller_id: str = Depends(get_caller_id),
    manager: SessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    """List the caller's live sessions."""
    owned = [
        session_id
        for session_id in manager.list_sessions()
        if (s := manager.get_session(session_id)) is not None and s.owner_id == caller_id
    ]
    return {
        "active_count": len(owned),
        "available_slots": manager.available_slots,
        "sessions": owned,
    }


@router.get("/{session_id}", response_model=SessionStatusResponse)
async def get_session_status(
    session_id: str,
    caller_id: str = Depends(get_caller_id),
    manager: SessionManager = Depends(get_session_manager),
) -> SessionStatusResponse:
    """Get status of a session."""
    session = _owned_session(manager, session_id, caller_id)
    return SessionStatusResponse(
        session_id=session.session_id,
        conversation_id=session.conversation_id,
        state=session.state.value,
        is_running=session.is_running,
        messages_emitted=len(session.transcript),
    )


@router.delete("/{session_id}")
async def delete_session(
    session_id: str,
    caller_id: str = Depends(get_caller_id),
    manager: SessionManager = Depends(get_session_manager),
) -> dict[str, Any]:
    """Stop a session, flushing any in-progress utterances."""
    _owned_session(manager, session_id, caller_id)
    flushed = await manager.end_session(session_id)
    if flushed is None:
        raise SessionNotFoundError(session_id)

    return {
        "message": f"Session {session_id} ended",
        "flushed": [m.to_dict() for m in flushed],
    }


@router.post("/{session_id}/events", status_code=status.HTTP_202_ACCEPTED)
async def submit_events(
    session_id: str,
    events: Any = Body(..., description="One streaming event or a list of them"),
    caller_id: str = Depends(get_caller_id),
    manager: SessionManager = Depends(get_session_manager),
) -> dict[str, int]:
    """Relay streaming events into the session queue."""
    session = _owned_session(manager, session_id, caller_id)
    batch = events if isinstance(events, list) else [events]

    accepted = sum(1 for raw in batch if session.submit_event(raw))
    return {"accepted": accepted, "dropped": len(batch) - accepted}


# WebSocket handshakes carry no Request, so the key check is done inline
ws_router = APIRouter(prefix="/sessions", tags=["sessions"])


@ws_router.websocket("/{session_id}/events")
async def events_websocket(
    websocket: WebSocket,
    session_id: str,
    manager: SessionManager = Depends(get_session_manager),
) -> None:
    """WebSocket relay for streaming events.

    Each text frame is one JSON event. Frames that are not JSON are still
    queued so the reactor records them as malformed.
    """
    if not websocket_authorized(websocket):
        await websocket.close(code=4001, reason="Unauthorized")
        return

    caller_id = websocket.headers.get(get_settings().caller_header)
    session = manager.get_session(session_id)

    if session is None or caller_id is None or session.owner_id != caller_id:
        await websocket.close(code=4004, reason="Session not found")
        return

    await websocket.accept()
    try:
        while True:
            text = await websocket.receive_text()
            try:
                raw: Any = json.loads(text)
            except ValueError:
                raw = text
            accepted = session.submit_event(raw)
            await websocket.send_json({"accepted": accepted})
    except WebSocketDisconnect:
        logger.debug("event_relay_closed", session_id=session_id)
