"""Streaming module - avatar streaming service contract and clients.

Supports multiple backends:
- http: The hosted avatar streaming service
- mock: Local development and tests
"""

from __future__ import annotations

from avatar_console.config.settings import Settings
from avatar_console.exceptions import MissingConfigError
from avatar_console.streaming.base import (
    StartSessionRequest,
    StreamingClient,
    StreamingSessionHandle,
    VoiceSettings,
    build_start_request,
)
from avatar_console.streaming.events import (
    Channel,
    PartialFragment,
    StreamEvent,
    StreamEventType,
    parse_stream_event,
)
from avatar_console.streaming.http_client import HTTPStreamingClient, StreamingConfig
from avatar_console.streaming.mock_client import MockStreamingClient, MockStreamingConfig


def create_streaming_client(settings: Settings) -> StreamingClient:
    """Factory function to create the streaming client from settings.

    Raises:
        MissingConfigError: If the http engine is selected without an API key
    """
    if settings.streaming_engine == "mock":
        return MockStreamingClient()

    if not settings.streaming_api_key:
        raise MissingConfigError(
            "STREAMING_API_KEY", "required when STREAMING_ENGINE=http"
        )

    return HTTPStreamingClient(
        StreamingConfig(
            api_key=settings.streaming_api_key,
            base_url=settings.streaming_base_url,
            timeout_s=settings.streaming_request_timeout_s,
        )
    )


__all__ = [
    # Contract
    "StreamingClient",
    "StartSessionRequest",
    "StreamingSessionHandle",
    "VoiceSettings",
    "build_start_request",
    # Events
    "Channel",
    "PartialFragment",
    "StreamEvent",
    "StreamEventType",
    "parse_stream_event",
    # Clients
    "HTTPStreamingClient",
    "StreamingConfig",
    "MockStreamingClient",
    "MockStreamingConfig",
    # Factory
    "create_streaming_client",
]
