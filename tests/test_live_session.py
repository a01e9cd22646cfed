"""Tests for Live Session and Session Manager.

Tests cover:
- start/stop lifecycle against the mock streaming client
- Event reactor feeding the transcript and the message sink
- stop() drain and flush
- Unsolicited disconnects (CONNECTED and CONNECTING)
- Start failures and bounded remote close
- SessionManager limits and cleanup
"""

import asyncio

import pytest

from avatar_console.exceptions import (
    SessionLimitError,
    SessionStateError,
    StreamingConnectionError,
    StreamingServiceError,
)
from avatar_console.orchestrator.session import LiveSession, SessionManager
from avatar_console.orchestrator.state_machine import SessionState
from avatar_console.streaming.base import StartSessionRequest
from avatar_console.streaming.mock_client import MockStreamingClient, MockStreamingConfig


def talking(channel: str, text: str) -> dict:
    return {"type": f"{channel}_talking_message", "detail": {"message": text}}


def end_of(channel: str) -> dict:
    return {"type": f"{channel}_end_message"}


@pytest.fixture
def request_payload() -> StartSessionRequest:
    return StartSessionRequest(avatar_id="avatar-1", knowledge_base="You are helpful.")


@pytest.fixture
def sink():
    """Message sink recording persisted messages."""
    persisted = []

    async def record(message):
        persisted.append(message)

    record.persisted = persisted
    return record


def make_session(client, sink=None, **kwargs) -> LiveSession:
    return LiveSession(
        conversation_id="conv-1",
        streaming_client=client,
        on_message=sink,
        **kwargs,
    )


class TestStart:
    """Tests for LiveSession.start()."""

    @pytest.mark.asyncio
    async def test_start_connects(self, request_payload):
        """Successful start ends CONNECTED with a remote handle."""
        client = MockStreamingClient()
        session = make_session(client)

        handle = await session.start(request_payload)

        assert session.state is SessionState.CONNECTED
        assert session.is_running
        assert session.handle is handle
        assert client.calls.tokens_issued == 1
        assert client.calls.opened == [request_payload]
        await session.stop()

    @pytest.mark.asyncio
    async def test_start_twice_raises(self, request_payload):
        """start() from CONNECTED is an invalid state."""
        session = make_session(MockStreamingClient())
        await session.start(request_payload)

        with pytest.raises(SessionStateError):
            await session.start(request_payload)

        assert session.state is SessionState.CONNECTED
        await session.stop()

    @pytest.mark.asyncio
    async def test_token_failure_reverts_to_inactive(self, request_payload):
        """Token failure propagates and leaves the session INACTIVE."""
        client = MockStreamingClient(MockStreamingConfig(fail_token=True))
        session = make_session(client)

        with pytest.raises(StreamingServiceError):
            await session.start(request_payload)

        assert session.state is SessionState.INACTIVE
        assert session.submit_event(talking("user", "hi")) is False

    @pytest.mark.asyncio
    async def test_open_failure_then_retry(self, request_payload):
        """A failed start can be followed by a successful one."""
        client = MockStreamingClient(MockStreamingConfig(fail_open=True))
        session = make_session(client)

        with pytest.raises(StreamingServiceError):
            await session.start(request_payload)
        assert session.state is SessionState.INACTIVE

        client.config.fail_open = False
        await session.start(request_payload)

        assert session.state is SessionState.CONNECTED
        await session.stop()

    @pytest.mark.asyncio
    async def test_cancelled_start_reverts_to_inactive(self, request_payload):
        """Cancelling start() mid-open stops the reactor and leaves INACTIVE."""
        client = MockStreamingClient(MockStreamingConfig(open_delay_s=1.0))
        session = make_session(client)

        starting = asyncio.create_task(session.start(request_payload))
        await asyncio.sleep(0.05)
        assert session.state is SessionState.CONNECTING

        starting.cancel()
        with pytest.raises(asyncio.CancelledError):
            await starting

        assert session.state is SessionState.INACTIVE
        assert session.is_running is False
        assert session.submit_event(talking("user", "late")) is False

        client.config.open_delay_s = 0.0
        await session.start(request_payload)
        assert session.state is SessionState.CONNECTED
        await session.stop()

    @pytest.mark.asyncio
    async def test_stream_ready_while_connecting(self, request_payload):
        """stream_ready during the open call moves to CONNECTED early."""
        client = MockStreamingClient(MockStreamingConfig(open_delay_s=0.1))
        session = make_session(client)

        start = asyncio.create_task(session.start(request_payload))
        await asyncio.sleep(0.02)
        assert session.state is SessionState.CONNECTING

        session.submit_event({"type": "stream_ready"})
        await session.wait_idle()
        assert session.state is SessionState.CONNECTED

        await start
        assert session.state is SessionState.CONNECTED
        await session.stop()


class TestReactor:
    """Tests for event processing."""

    @pytest.mark.asyncio
    async def test_fragments_become_persisted_messages(self, request_payload, sink):
        """Fragments and boundaries emit messages in arrival order."""
        session = make_session(MockStreamingClient(), sink)
        await session.start(request_payload)

        for event in [
            talking("user", "I like "),
            talking("user", "jazz"),
            end_of("user"),
            talking("avatar", "Great choice!"),
            end_of("avatar"),
        ]:
            assert session.submit_event(event) is True
        await session.wait_idle()

        assert [(m.role, m.content) for m in sink.persisted] == [
            ("user", "I like jazz"),
            ("assistant", "Great choice!"),
        ]
        assert session.transcript == sink.persisted
        await session.stop()

    @pytest.mark.asyncio
    async def test_malformed_event_is_dropped(self, request_payload, sink):
        """Malformed events are skipped and the reactor keeps running."""
        session = make_session(MockStreamingClient(), sink)
        await session.start(request_payload)

        session.submit_event({"type": "no_such_event"})
        session.submit_event({"type": "user_talking_message"})
        session.submit_event("not an object")
        session.submit_event(talking("user", "still here"))
        session.submit_event(end_of("user"))
        await session.wait_idle()

        assert [m.content for m in sink.persisted] == ["still here"]
        assert session.state is SessionState.CONNECTED
        await session.stop()

    @pytest.mark.asyncio
    async def test_informational_events_ignored(self, request_payload, sink):
        """user_start / avatar_start_talking do not touch the transcript."""
        session = make_session(MockStreamingClient(), sink)
        await session.start(request_payload)

        for event_type in ["user_start", "user_stop", "avatar_start_talking", "avatar_stop_talking"]:
            session.submit_event({"type": event_type})
        await session.wait_idle()

        assert sink.persisted == []
        await session.stop()

    @pytest.mark.asyncio
    async def test_persist_failure_does_not_stop_reactor(self, request_payload):
        """A failing sink is logged; later messages still flow."""
        calls = []

        async def flaky(message):
            calls.append(message.content)
            if len(calls) == 1:
                raise RuntimeError("store unavailable")

        session = make_session(MockStreamingClient(), flaky)
        await session.start(request_payload)

        for text in ["one", "two"]:
            session.submit_event(talking("user", text))
            session.submit_event(end_of("user"))
        await session.wait_idle()

        assert calls == ["one", "two"]
        assert [m.content for m in session.transcript] == ["one", "two"]
        await session.stop()

    @pytest.mark.asyncio
    async def test_queue_full_drops_event(self, request_payload):
        """submit_event returns False when the queue is full."""
        session = make_session(MockStreamingClient(), queue_size=1)
        await session.start(request_payload)

        # Reactor has not run yet, so the single slot is taken by the first event
        assert session.submit_event(talking("user", "a")) is True
        assert session.submit_event(talking("user", "b")) is False
        await session.stop()


class TestStop:
    """Tests for LiveSession.stop()."""

    @pytest.mark.asyncio
    async def test_stop_flushes_both_channels(self, request_payload, sink):
        """Buffered text on both channels becomes two messages, user first."""
        client = MockStreamingClient()
        session = make_session(client, sink)
        handle = await session.start(request_payload)

        session.submit_event(talking("avatar", "Let me tell you"))
        session.submit_event(talking("user", "Wait, one more"))

        flushed = await session.stop()

        assert [(m.role, m.content) for m in flushed] == [
            ("user", "Wait, one more"),
            ("assistant", "Let me tell you"),
        ]
        assert sink.persisted == flushed
        assert session.state is SessionState.INACTIVE
        assert client.calls.closed == [handle.session_id]

    @pytest.mark.asyncio
    async def test_drain_timeout_does_not_abort_running_save(self, request_payload):
        """A save still in flight when the drain times out completes before stop returns."""
        persisted = []

        async def slow_sink(message):
            await asyncio.sleep(0.3)
            persisted.append(message.content)

        session = make_session(MockStreamingClient(), slow_sink, drain_timeout_s=0.05)
        await session.start(request_payload)

        session.submit_event(talking("user", "hello there"))
        session.submit_event(end_of("user"))
        await session.stop()

        assert [m.content for m in session.transcript] == ["hello there"]
        assert persisted == ["hello there"]

    @pytest.mark.asyncio
    async def test_stop_from_inactive_is_noop(self):
        """stop() before start() does nothing."""
        client = MockStreamingClient()
        session = make_session(client)

        assert await session.stop() == []
        assert client.calls.closed == []

    @pytest.mark.asyncio
    async def test_stop_twice(self, request_payload):
        """Second stop() is a no-op."""
        client = MockStreamingClient()
        session = make_session(client)
        await session.start(request_payload)

        await session.stop()
        assert await session.stop() == []
        assert len(client.calls.closed) == 1

    @pytest.mark.asyncio
    async def test_close_timeout_force_releases(self, request_payload):
        """A close that never acknowledges is bounded by stop_timeout_s."""
        client = MockStreamingClient(MockStreamingConfig(close_delay_s=5.0))
        session = make_session(client, stop_timeout_s=0.05)
        await session.start(request_payload)

        await asyncio.wait_for(session.stop(), timeout=1.0)

        assert session.state is SessionState.INACTIVE
        assert session.handle is None

    @pytest.mark.asyncio
    async def test_fragments_after_stop_dropped(self, request_payload, sink):
        """Events after stop() are rejected."""
        session = make_session(MockStreamingClient(), sink)
        await session.start(request_payload)
        await session.stop()

        assert session.submit_event(talking("user", "late")) is False
        assert sink.persisted == []


class TestDisconnect:
    """Tests for unsolicited disconnects."""

    @pytest.mark.asyncio
    async def test_disconnect_while_connected(self, request_payload, sink):
        """Disconnect flushes buffers, goes INACTIVE and reports once."""
        disconnected = []
        session = make_session(
            MockStreamingClient(), sink, on_disconnect=disconnected.append
        )
        await session.start(request_payload)

        session.submit_event(talking("user", "cut off mid"))
        session.submit_event({"type": "stream_disconnected"})
        await session.wait_idle()

        assert session.state is SessionState.INACTIVE
        assert [m.content for m in sink.persisted] == ["cut off mid"]
        assert disconnected == [session]
        assert session.submit_event(talking("user", "after")) is False

    @pytest.mark.asyncio
    async def test_disconnect_during_connecting_fails_start(self, request_payload):
        """Disconnect while CONNECTING fails start(); a new start is accepted."""
        client = MockStreamingClient(MockStreamingConfig(open_delay_s=0.1))
        session = make_session(client)

        start = asyncio.create_task(session.start(request_payload))
        await asyncio.sleep(0.02)
        assert session.state is SessionState.CONNECTING

        session.submit_event({"type": "stream_disconnected"})
        with pytest.raises(StreamingConnectionError):
            await start

        assert session.state is SessionState.INACTIVE
        assert len(client.calls.closed) == 1  # Late-opened remote session released

        client.config.open_delay_s = 0.0
        await session.start(request_payload)
        assert session.state is SessionState.CONNECTED
        await session.stop()

    @pytest.mark.asyncio
    async def test_async_disconnect_callback(self, request_payload):
        """Coroutine callbacks are awaited."""
        seen = asyncio.Event()

        async def on_disconnect(session):
            seen.set()

        session = make_session(MockStreamingClient(), on_disconnect=on_disconnect)
        await session.start(request_payload)
        session.submit_event({"type": "stream_disconnected"})
        await session.wait_idle()

        assert seen.is_set()

    @pytest.mark.asyncio
    async def test_stop_after_disconnect_is_noop(self, request_payload):
        """stop() after a disconnect does not close the remote again."""
        client = MockStreamingClient()
        session = make_session(client)
        await session.start(request_payload)
        session.submit_event({"type": "stream_disconnected"})
        await session.wait_idle()

        assert await session.stop() == []
        assert client.calls.closed == []


class TestSessionManager:
    """Tests for SessionManager."""

    @pytest.mark.asyncio
    async def test_create_and_get(self):
        """Created sessions are registered by id."""
        manager = SessionManager(max_sessions=2)
        session = await manager.create_session("conv-1", MockStreamingClient(), owner_id="u1")

        assert manager.get_session(session.session_id) is session
        assert session.owner_id == "u1"
        assert manager.active_count == 1
        assert manager.available_slots == 1

    @pytest.mark.asyncio
    async def test_limit_raises(self):
        """Creating beyond capacity raises SessionLimitError."""
        manager = SessionManager(max_sessions=1)
        await manager.create_session("conv-1", MockStreamingClient())

        with pytest.raises(SessionLimitError) as exc_info:
            await manager.create_session("conv-2", MockStreamingClient())

        assert exc_info.value.details == {"max_sessions": 1, "current_sessions": 1}

    @pytest.mark.asyncio
    async def test_end_session_stops_and_removes(self, request_payload):
        """end_session() stops the session and frees the slot."""
        manager = SessionManager(max_sessions=2)
        session = await manager.create_session("conv-1", MockStreamingClient())
        await session.start(request_payload)
        session.submit_event(talking("user", "bye"))

        flushed = await manager.end_session(session.session_id)

        assert [m.content for m in flushed] == ["bye"]
        assert session.state is SessionState.INACTIVE
        assert manager.get_session(session.session_id) is None

    @pytest.mark.asyncio
    async def test_end_unknown_session(self):
        """Unknown session id returns None."""
        manager = SessionManager()
        assert await manager.end_session("missing") is None

    @pytest.mark.asyncio
    async def test_end_all_sessions(self, request_payload):
        """end_all_sessions() stops every session."""
        manager = SessionManager(max_sessions=3)
        sessions = [
            await manager.create_session(f"conv-{i}", MockStreamingClient()) for i in range(3)
        ]
        for session in sessions:
            await session.start(request_payload)

        ended = await manager.end_all_sessions()

        assert ended == 3
        assert manager.list_sessions() == []
        assert all(s.state is SessionState.INACTIVE for s in sessions)

    @pytest.mark.asyncio
    async def test_sessions_by_state(self, request_payload):
        """Filter sessions by lifecycle state."""
        manager = SessionManager()
        live = await manager.create_session("conv-1", MockStreamingClient())
        idle = await manager.create_session("conv-2", MockStreamingClient())
        await live.start(request_payload)

        assert manager.get_sessions_by_state(SessionState.CONNECTED) == [live]
        assert manager.get_sessions_by_state(SessionState.INACTIVE) == [idle]
        await manager.end_all_sessions()
