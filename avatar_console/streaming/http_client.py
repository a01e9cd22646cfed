"""HTTP Streaming Client - REST calls to the avatar streaming service.

Endpoints (relative to base_url):
- POST /v1/streaming.create_token  (X-Api-Key)      -> data.token
- POST /v1/streaming.new           (Bearer token)   -> data.session_id
- POST /v1/streaming.start         (Bearer token)
- POST /v1/streaming.stop          (Bearer token)

Media transport is negotiated by the browser with the URL/token returned
from streaming.new; this client never touches audio or video.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from avatar_console.exceptions import StreamingConnectionError, StreamingServiceError
from avatar_console.observability.logging import get_logger
from avatar_console.streaming.base import (
    StartSessionRequest,
    StreamingClient,
    StreamingSessionHandle,
)

logger = get_logger(__name__)


@dataclass
class StreamingConfig:
    """Configuration for the HTTP streaming client."""

    api_key: str
    base_url: str = "https://api.heygen.com"
    timeout_s: float = 10.0


class HTTPStreamingClient(StreamingClient):
    """Streaming service client over httpx.

    Usage:
        client = HTTPStreamingClient(StreamingConfig(api_key="..."))
        token = await client.create_token()
        handle = await client.open_session(request, token)
        ...
        await client.close_session(handle)
        await client.aclose()
    """

    def __init__(
        self,
        config: StreamingConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_s,
            transport=transport,
        )

    async def create_token(self) -> str:
        data = await self._post(
            "/v1/streaming.create_token",
            operation="create_token",
            headers={"X-Api-Key": self._config.api_key},
        )
        token = data.get("token")
        if not token:
            raise StreamingServiceError("token missing from response", operation="create_token")
        return token

    async def open_session(
        self,
        request: StartSessionRequest,
        token: str,
    ) -> StreamingSessionHandle:
        headers = {"Authorization": f"Bearer {token}"}

        data = await self._post(
            "/v1/streaming.new",
            operation="new",
            headers=headers,
            json=request.to_payload(),
        )
        session_id = data.get("session_id")
        if not session_id:
            raise StreamingServiceError("session_id missing from response", operation="new")

        await self._post(
            "/v1/streaming.start",
            operation="start",
            headers=headers,
            json={"session_id": session_id},
        )

        logger.info(
            "streaming_session_opened",
            remote_session_id=session_id,
            avatar_id=request.avatar_id,
            has_knowledge_id=request.knowledge_id is not None,
        )

        return StreamingSessionHandle(
            session_id=session_id,
            url=data.get("url"),
            access_token=data.get("access_token"),
            metadata={"token": token},
        )

    async def close_session(self, handle: StreamingSessionHandle) -> None:
        headers = {}
        token = handle.metadata.get("token")
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            headers["X-Api-Key"] = self._config.api_key

        await self._post(
            "/v1/streaming.stop",
            operation="stop",
            headers=headers,
            json={"session_id": handle.session_id},
        )
        logger.info("streaming_session_closed", remote_session_id=handle.session_id)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(
        self,
        path: str,
        operation: str,
        headers: dict[str, str],
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """POST and return the response's data object.

        Raises:
            StreamingConnectionError: Network failure or timeout
            StreamingServiceError: Non-2xx status or unexpected body
        """
        try:
            response = await self._client.post(path, headers=headers, json=json or {})
        except httpx.TimeoutException as e:
            logger.error("streaming_request_timeout", operation=operation, error=str(e))
            raise StreamingConnectionError(f"timed out: {e}", operation=operation)
        except httpx.HTTPError as e:
            logger.error("streaming_request_failed", operation=operation, error=str(e))
            raise StreamingConnectionError(str(e), operation=operation)

        if response.status_code >= 400:
            logger.error(
                "streaming_request_rejected",
                operation=operation,
                status_code=response.status_code,
            )
            raise StreamingServiceError(
                f"{operation} rejected with HTTP {response.status_code}",
                operation=operation,
                status_code=response.status_code,
            )

        try:
            body = response.json()
        except ValueError:
            raise StreamingServiceError("response is not JSON", operation=operation)

        data = body.get("data") if isinstance(body, dict) else None
        return data if isinstance(data, dict) else {}
