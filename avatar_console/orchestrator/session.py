"""Live Session - one streaming session and its transcript reactor.

Coordinates, for a single avatar streaming session:
- State machine (INACTIVE / CONNECTING / CONNECTED)
- Remote session open/close through a StreamingClient
- Inbound event queue consumed by one reactor task that owns the
  TranscriptAggregator

Events are submitted by whoever relays the streaming service's events
(websocket or HTTP route). Only the reactor touches the buffers, so
messages on a channel are emitted and persisted in arrival order.
"""

import asyncio
import inspect
import time
import uuid
from typing import Any, Awaitable, Callable

from avatar_console.config.constants import CONTINUITY
from avatar_console.exceptions import (
    MalformedEventError,
    SessionLimitError,
    SessionStateError,
    StreamingConnectionError,
    StreamingServiceError,
)
from avatar_console.observability.logging import SessionLogger, TranscriptLogger
from avatar_console.observability.metrics import (
    record_disconnect,
    record_malformed_event,
    record_message_emitted,
    record_session_end,
    record_session_start,
    record_session_start_failed,
)
from avatar_console.orchestrator.state_machine import (
    SessionState,
    SessionStateMachine,
    StateTransition,
)
from avatar_console.orchestrator.transcript import TranscriptAggregator
from avatar_console.storage.models import Message
from avatar_console.streaming.base import (
    StartSessionRequest,
    StreamingClient,
    StreamingSessionHandle,
)
from avatar_console.streaming.events import StreamEventType, parse_stream_event
from avatar_console.utils.async_timeout import AsyncTimeoutError, with_timeout

MessageSink = Callable[[Message], Awaitable[None]]
DisconnectCallback = Callable[["LiveSession"], Any]

_STOP = object()  # Reactor shutdown sentinel


class LiveSession:
    """A live avatar streaming session.

    Usage:
        session = LiveSession(
            conversation_id="conv-1",
            streaming_client=client,
            on_message=orchestrator_sink,
        )
        await session.start(request)

        session.submit_event({"type": "user_talking_message", "detail": {"message": "Hi"}})
        session.submit_event({"type": "user_end_message"})

        flushed = await session.stop()
    """

    def __init__(
        self,
        conversation_id: str,
        streaming_client: StreamingClient,
        on_message: MessageSink | None = None,
        session_id: str | None = None,
        owner_id: str | None = None,
        stop_timeout_s: float = CONTINUITY.SESSION_STOP_TIMEOUT_S,
        drain_timeout_s: float = CONTINUITY.SESSION_DRAIN_TIMEOUT_S,
        queue_size: int = CONTINUITY.SESSION_EVENT_QUEUE_SIZE,
        on_disconnect: DisconnectCallback | None = None,
    ) -> None:
        self._session_id = session_id or str(uuid.uuid4())
        self._conversation_id = conversation_id
        self._owner_id = owner_id
        self._client = streaming_client
        self._on_message = on_message
        self._on_disconnect = on_disconnect
        self._stop_timeout_s = stop_timeout_s
        self._drain_timeout_s = drain_timeout_s
        self._queue_size = queue_size

        self._fsm = SessionStateMachine(self._session_id)
        self._fsm.on_state_change(self._log_transition)

        # Exist only while the session is live
        self._aggregator: TranscriptAggregator | None = None
        self._queue: asyncio.Queue | None = None
        self._reactor: asyncio.Task | None = None
        self._handle: StreamingSessionHandle | None = None

        self._transcript: list[Message] = []
        self._saves: set[asyncio.Task] = set()
        self._connected_at: float | None = None

        self._logger = SessionLogger(self._session_id, conversation_id)
        self._transcript_logger = TranscriptLogger(self._session_id)

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def owner_id(self) -> str | None:
        return self._owner_id

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._fsm.state

    @property
    def is_running(self) -> bool:
        """Whether the session is CONNECTING or CONNECTED."""
        return self._fsm.is_live

    @property
    def transcript(self) -> list[Message]:
        """Messages emitted by this session, in emission order."""
        return self._transcript.copy()

    @property
    def handle(self) -> StreamingSessionHandle | None:
        """Remote session handle while connected."""
        return self._handle

    @property
    def state_machine(self) -> SessionStateMachine:
        return self._fsm

    async def start(self, request: StartSessionRequest) -> StreamingSessionHandle:
        """Open the remote session and start the event reactor.

        Raises:
            SessionStateError: If the session is not INACTIVE
            StreamingServiceError: If the token or open call fails, or the
                stream disconnected before the session was established
        """
        if self._fsm.state is not SessionState.INACTIVE:
            raise SessionStateError(
                "Session already started",
                session_id=self._session_id,
                current_state=self._fsm.state.value,
                target_state=SessionState.CONNECTING.value,
            )

        await self._fsm.transition_to(SessionState.CONNECTING, "start")
        self._aggregator = TranscriptAggregator()
        self._queue = asyncio.Queue(maxsize=self._queue_size)
        self._reactor = asyncio.create_task(self._run(self._queue))

        try:
            token = await self._client.create_token()
            handle = await self._client.open_session(request, token)
        except BaseException as e:
            # Cancellation of the caller included
            await self._abort_start(str(e) or type(e).__name__)
            raise

        if self._fsm.state is SessionState.INACTIVE:
            # Disconnected (or stopped) while the open call was in flight
            await self._close_remote(handle)
            await self._abort_start("stream disconnected while connecting")
            raise StreamingConnectionError(
                "stream disconnected while connecting", operation="start"
            )

        self._handle = handle
        if self._fsm.state is SessionState.CONNECTING:
            await self._fsm.transition_to(SessionState.CONNECTED, "session_opened")

        self._connected_at = time.monotonic()
        record_session_start()
        self._logger.session_started({
            "remote_session_id": handle.session_id,
            "language": request.language,
            "has_knowledge_id": request.knowledge_id is not None,
        })
        return handle

    async def stop(self, reason: str = "stop") -> list[Message]:
        """Drain queued events, flush buffers and close the remote session.

        No-op from INACTIVE.

        Returns:
            Messages emitted by the flush (user first, then avatar)
        """
        if self._fsm.state is SessionState.INACTIVE:
            return []

        await self._drain_reactor()
        await self._wait_for_saves()
        if self._fsm.state is SessionState.INACTIVE:
            # A disconnect was processed during the drain
            return []

        was_connected = self._connected_at is not None
        flushed = await self._flush()

        handle, self._handle = self._handle, None
        if handle is not None:
            await self._close_remote(handle)

        await self._fsm.reset(reason)
        self._release()

        if was_connected:
            record_session_end(reason)
        self._logger.session_ended(
            reason=reason,
            duration_s=self._connected_duration_s(),
            flushed=len(flushed),
        )
        return flushed

    def submit_event(self, raw: Any) -> bool:
        """Queue one raw streaming event for the reactor.

        Returns:
            False if the event was dropped (session not live or queue full)
        """
        event_type = raw.get("type") if isinstance(raw, dict) else None
        if self._queue is None or self._fsm.state is SessionState.INACTIVE:
            self._transcript_logger.event_dropped(str(event_type), "session inactive")
            return False

        try:
            self._queue.put_nowait(raw)
        except asyncio.QueueFull:
            self._transcript_logger.event_dropped(str(event_type), "queue full")
            return False
        return True

    async def wait_idle(self) -> None:
        """Wait until every queued event has been processed."""
        if self._queue is not None:
            await self._queue.join()

    # -------------------------------------------------------------------------
    # Reactor
    # -------------------------------------------------------------------------

    async def _run(self, queue: asyncio.Queue) -> None:
        """Consume events until the stop sentinel or a disconnect."""
        try:
            while True:
                raw = await queue.get()
                try:
                    if raw is _STOP:
                        return
                    if not await self._dispatch(raw):
                        return
                finally:
                    queue.task_done()
        finally:
            # Anything still queued can no longer be applied
            while not queue.empty():
                queue.get_nowait()
                queue.task_done()

    async def _dispatch(self, raw: Any) -> bool:
        """Apply one event. Returns False when the reactor must exit."""
        try:
            event = parse_stream_event(raw)
        except MalformedEventError as e:
            record_malformed_event(e.event_type)
            self._transcript_logger.malformed_event(
                e.reason, e.event_type
            )
            return True

        if event.type is StreamEventType.STREAM_DISCONNECTED:
            await self._handle_disconnect()
            return False

        if event.type is StreamEventType.STREAM_READY:
            if self._fsm.state is SessionState.CONNECTING:
                await self._fsm.transition_to(SessionState.CONNECTED, "stream_ready")
            return True

        if event.fragment is not None and self._aggregator is not None:
            message = self._aggregator.accept(event.fragment)
            if message is not None:
                await self._emit(message)
        return True

    async def _handle_disconnect(self) -> None:
        """Unsolicited disconnect: flush, go INACTIVE, report. Never retried."""
        state = self._fsm.state
        was_connected = self._connected_at is not None
        self._logger.disconnected(state.value)
        record_disconnect()

        flushed = await self._flush()
        self._handle = None
        await self._fsm.reset("stream_disconnected")
        self._aggregator = None
        self._queue = None

        if was_connected:
            record_session_end("disconnect")
            self._logger.session_ended(
                reason="disconnect",
                duration_s=self._connected_duration_s(),
                flushed=len(flushed),
            )

        if self._on_disconnect is not None:
            try:
                result = self._on_disconnect(self)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                self._logger.disconnect_callback_failed(str(e))

    async def _emit(self, message: Message) -> None:
        """Append to the live transcript and persist."""
        self._transcript.append(message)
        record_message_emitted(message.role)
        self._transcript_logger.message_emitted(
            message.role, message.id, len(message.content)
        )

        if self._on_message is None:
            return

        # Own task: cancelling the reactor never aborts a save mid-write
        save = asyncio.ensure_future(self._persist(message))
        self._saves.add(save)
        save.add_done_callback(self._saves.discard)
        await asyncio.shield(save)

    async def _persist(self, message: Message) -> None:
        try:
            await self._on_message(message)
        except Exception as e:
            self._transcript_logger.persist_failed(message.id, str(e))

    async def _wait_for_saves(self) -> None:
        """Wait for saves the reactor started before it stopped."""
        if self._saves:
            await asyncio.gather(*self._saves)

    async def _flush(self) -> list[Message]:
        if self._aggregator is None:
            return []
        flushed = self._aggregator.flush()
        for message in flushed:
            await self._emit(message)
        return flushed

    # -------------------------------------------------------------------------
    # Teardown
    # -------------------------------------------------------------------------

    async def _drain_reactor(self) -> None:
        """Let the reactor process already-queued events, bounded."""
        reactor = self._reactor
        if reactor is None or reactor.done() or self._queue is None:
            return

        try:
            self._queue.put_nowait(_STOP)
        except asyncio.QueueFull:
            reactor.cancel()
            return

        try:
            await with_timeout(reactor, self._drain_timeout_s, "event drain")
        except AsyncTimeoutError:
            self._logger.drain_timeout(self._drain_timeout_s)

    async def _close_remote(self, handle: StreamingSessionHandle) -> None:
        """Close the remote session, force-releasing on timeout or failure."""
        try:
            await with_timeout(
                self._client.close_session(handle),
                self._stop_timeout_s,
                "session close",
            )
        except AsyncTimeoutError:
            self._logger.close_timeout(self._stop_timeout_s)
        except StreamingServiceError as e:
            self._logger.close_failed(str(e))

    async def _abort_start(self, error: str) -> None:
        reactor = self._reactor
        if reactor is not None and not reactor.done():
            reactor.cancel()
            try:
                await reactor
            except asyncio.CancelledError:
                pass

        await self._fsm.reset("start_failed")
        self._release()
        record_session_start_failed()
        self._logger.session_start_failed(error)

    def _release(self) -> None:
        reactor = self._reactor
        if reactor is not None and not reactor.done():
            reactor.cancel()
        self._reactor = None
        self._queue = None
        self._aggregator = None
        self._handle = None

    def _connected_duration_s(self) -> float:
        if self._connected_at is None:
            return 0.0
        duration = time.monotonic() - self._connected_at
        self._connected_at = None
        return duration

    def _log_transition(self, transition: StateTransition) -> None:
        self._logger.state_change(
            old_state=transition.old_state.value,
            new_state=transition.new_state.value,
            reason=transition.reason,
            t_ms=transition.t_ms,
        )


class SessionManager:
    """Manages concurrent live sessions.

    Usage:
        manager = SessionManager(max_sessions=50)

        session = await manager.create_session(
            conversation_id="conv-1",
            streaming_client=client,
            on_message=sink,
        )
        await session.start(request)
        # ... relay events ...
        await manager.end_session(session.session_id)
    """

    def __init__(
        self,
        max_sessions: int = CONTINUITY.MAX_CONCURRENT_SESSIONS,
        stop_timeout_s: float = CONTINUITY.SESSION_STOP_TIMEOUT_S,
    ) -> None:
        self._max_sessions = max_sessions
        self._stop_timeout_s = stop_timeout_s
        self._sessions: dict[str, LiveSession] = {}
        self._lock = asyncio.Lock()

    @property
    def active_count(self) -> int:
        """Number of registered sessions."""
        return len(self._sessions)

    @property
    def available_slots(self) -> int:
        return self._max_sessions - len(self._sessions)

    async def create_session(
        self,
        conversation_id: str,
        streaming_client: StreamingClient,
        on_message: MessageSink | None = None,
        owner_id: str | None = None,
        on_disconnect: DisconnectCallback | None = None,
    ) -> LiveSession:
        """Register a new, not yet started session.

        Raises:
            SessionLimitError: If at capacity
        """
        async with self._lock:
            if len(self._sessions) >= self._max_sessions:
                raise SessionLimitError(self._max_sessions, len(self._sessions))

            session = LiveSession(
                conversation_id=conversation_id,
                streaming_client=streaming_client,
                on_message=on_message,
                owner_id=owner_id,
                stop_timeout_s=self._stop_timeout_s,
                on_disconnect=on_disconnect,
            )
            self._sessions[session.session_id] = session
            return session

    def get_session(self, session_id: str) -> LiveSession | None:
        return self._sessions.get(session_id)

    async def remove_session(self, session_id: str) -> LiveSession | None:
        """Unregister a session without stopping it."""
        async with self._lock:
            return self._sessions.pop(session_id, None)

    async def end_session(
        self,
        session_id: str,
        reason: str = "stop",
    ) -> list[Message] | None:
        """Stop and remove a session.

        Returns:
            Flushed messages, or None if the session was not found
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        return await session.stop(reason)

    async def end_all_sessions(self, reason: str = "shutdown") -> int:
        """Stop every session. Returns the number ended."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            await session.stop(reason)
        return len(sessions)

    def list_sessions(self) -> list[str]:
        return list(self._sessions.keys())

    def get_sessions_by_state(self, state: SessionState) -> list[LiveSession]:
        return [s for s in self._sessions.values() if s.state is state]
