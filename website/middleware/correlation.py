"""Request id middleware: one id per request, echoed and bound to logs."""

import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.contextvars import bind_contextvars, clear_contextvars

from website.core.logging import get_request_logger

REQUEST_ID_HEADER = "X-Request-ID"
TEST_ID_PREFIX = "test-"


def is_valid_request_id(value: str | None) -> bool:
    """Accept UUIDs and ``test-`` prefixed ids sent by test clients."""
    if not value:
        return False
    if value.startswith(TEST_ID_PREFIX):
        return True
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Tags every request with a correlation id.

    A valid incoming ``X-Request-ID`` is reused, anything else is replaced by
    a fresh UUID. The id is stored on ``request.state`` for the error
    handlers, bound into the structlog context and returned in the response.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        clear_contextvars()

        incoming = request.headers.get(REQUEST_ID_HEADER)
        correlation_id = incoming if is_valid_request_id(incoming) else str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        bind_contextvars(correlation_id=correlation_id)
        get_request_logger(correlation_id).debug(
            "request_started", method=request.method, path=request.url.path
        )

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response
