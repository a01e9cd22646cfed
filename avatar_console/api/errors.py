"""Exception -> HTTP response mapping."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from avatar_console.exceptions import (
    AvatarConsoleError,
    ConfigurationError,
    InvalidMessageError,
    MalformedEventError,
    NotFoundError,
    SessionLimitError,
    SessionStateError,
    UpstreamError,
)
from avatar_console.observability.logging import get_logger

logger = get_logger(__name__)

# First match wins, so subclasses come before their bases
STATUS_BY_ERROR: tuple[tuple[type[AvatarConsoleError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (SessionStateError, status.HTTP_409_CONFLICT),
    (SessionLimitError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (InvalidMessageError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (MalformedEventError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (ConfigurationError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for(exc: AvatarConsoleError) -> int:
    for error_type, code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for the domain exceptions and a catch-all."""

    @app.exception_handler(AvatarConsoleError)
    async def domain_exception_handler(
        request: Request, exc: AvatarConsoleError
    ) -> JSONResponse:
        code = status_for(exc)
        log = logger.warning if code < 500 else logger.error
        log(
            "request_failed",
            path=request.url.path,
            method=request.method,
            status_code=code,
            **exc.to_dict(),
        )
        return JSONResponse(
            status_code=code,
            content={
                "detail": exc.message,
                "error": exc.__class__.__name__,
                "recoverable": exc.recoverable,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
