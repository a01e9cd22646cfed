"""Mock Streaming Client - For local development and tests.

Provides the StreamingClient interface without a streaming account.
Failures and slow acknowledgments can be injected per call.

Usage:
    Set STREAMING_ENGINE=mock in .env to use this client.
"""

import asyncio
import uuid
from dataclasses import dataclass, field

from avatar_console.exceptions import StreamingServiceError
from avatar_console.streaming.base import (
    StartSessionRequest,
    StreamingClient,
    StreamingSessionHandle,
)


@dataclass
class MockStreamingConfig:
    """Configuration for mock streaming client."""

    fail_token: bool = False
    fail_open: bool = False
    open_delay_s: float = 0.0
    close_delay_s: float = 0.0  # Large values simulate a close that never acks


@dataclass
class MockStreamingCalls:
    """Calls observed by the mock."""

    tokens_issued: int = 0
    opened: list[StartSessionRequest] = field(default_factory=list)
    closed: list[str] = field(default_factory=list)


class MockStreamingClient(StreamingClient):
    """Mock streaming client."""

    def __init__(self, config: MockStreamingConfig | None = None) -> None:
        self.config = config or MockStreamingConfig()
        self.calls = MockStreamingCalls()

    async def create_token(self) -> str:
        if self.config.fail_token:
            raise StreamingServiceError("token endpoint unavailable", operation="create_token")
        self.calls.tokens_issued += 1
        return f"mock-token-{self.calls.tokens_issued}"

    async def open_session(
        self,
        request: StartSessionRequest,
        token: str,
    ) -> StreamingSessionHandle:
        if self.config.open_delay_s:
            await asyncio.sleep(self.config.open_delay_s)
        if self.config.fail_open:
            raise StreamingServiceError("session could not be opened", operation="new")
        self.calls.opened.append(request)
        return StreamingSessionHandle(
            session_id=f"mock-{uuid.uuid4().hex[:12]}",
            url="wss://mock.invalid/stream",
            access_token=token,
        )

    async def close_session(self, handle: StreamingSessionHandle) -> None:
        if self.config.close_delay_s:
            await asyncio.sleep(self.config.close_delay_s)
        self.calls.closed.append(handle.session_id)
