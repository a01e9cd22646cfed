"""API Authentication - API key and caller identity for protected endpoints.

- API key validation via the configured header (X-API-Key by default)
- Skips the key check in development when no key is configured
- Caller identity from X-User-Id, issued upstream by the auth layer
"""

import secrets

from fastapi import Depends, Header, HTTPException, Request, WebSocket, status
from fastapi.security import APIKeyHeader

from avatar_console.config.settings import get_settings
from avatar_console.observability.logging import get_logger

logger = get_logger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

HEALTH_PATHS = frozenset({"/health", "/healthz", "/readyz", "/metrics"})


def _constant_time_compare(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode(), b.encode())


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def verify_api_key(
    request: Request,
    api_key: str | None = Depends(api_key_header),
) -> None:
    """Verify API key from request header.

    Raises:
        HTTPException: 401 if authentication fails
    """
    settings = get_settings()

    if request.url.path in HEALTH_PATHS:
        return

    if not settings.auth_enabled:
        return

    if settings.environment == "development" and not settings.api_key:
        logger.debug("auth_skipped", reason="development_no_key", path=request.url.path)
        return

    # Header name is configurable; APIKeyHeader only covers the default
    api_key = api_key or request.headers.get(settings.api_key_header)

    if not api_key:
        logger.warning(
            "auth_failed",
            reason="missing_api_key",
            path=request.url.path,
            client_ip=_client_ip(request),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not _constant_time_compare(api_key, settings.api_key or ""):
        logger.warning(
            "auth_failed",
            reason="invalid_api_key",
            path=request.url.path,
            client_ip=_client_ip(request),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )


async def get_caller_id(
    request: Request,
    x_user_id: str | None = Header(default=None),
) -> str:
    """Identity of the calling user.

    Raises:
        HTTPException: 401 if no identity was supplied
    """
    settings = get_settings()
    caller_id = request.headers.get(settings.caller_header) or x_user_id
    if not caller_id:
        logger.warning(
            "caller_missing",
            path=request.url.path,
            client_ip=_client_ip(request),
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity",
        )
    return caller_id


def generate_api_key() -> str:
    """Generate a secure random API key (64 hex characters)."""
    return secrets.token_hex(32)


def websocket_authorized(websocket: WebSocket) -> bool:
    """API key check for WebSocket handshakes (same rules as verify_api_key)."""
    settings = get_settings()
    if not settings.auth_enabled:
        return True
    if settings.environment == "development" and not settings.api_key:
        return True

    api_key = websocket.headers.get(settings.api_key_header)
    if api_key and _constant_time_compare(api_key, settings.api_key or ""):
        return True

    logger.warning(
        "auth_failed",
        reason="invalid_api_key" if api_key else "missing_api_key",
        path=websocket.url.path,
    )
    return False
