"""Request ID middleware.

Takes X-Request-ID from the caller (or generates one), binds it into the
structlog context so every log line of the request carries it, and echoes
it on the response.
"""

import uuid

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Correlate logs of one HTTP request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response: Response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
