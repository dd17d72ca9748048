"""Error handling middleware."""

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import (
    HTTP_422_UNPROCESSABLE_ENTITY,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from website.core.exceptions import MaterializationError, StoreError
from website.core.logging import get_logger

logger = get_logger(__name__)

# Map exception types to status codes (HTTPException uses its own status_code)
ERROR_MAPPING: dict[type[Exception], int] = {
    RequestValidationError: HTTP_422_UNPROCESSABLE_ENTITY,
    StoreError: HTTP_503_SERVICE_UNAVAILABLE,
    MaterializationError: HTTP_500_INTERNAL_SERVER_ERROR,
}


def _get_error_detail(exc: Exception) -> tuple[str, int]:
    """Get error detail and status code from exception."""
    if isinstance(exc, HTTPException):
        return str(exc.detail), exc.status_code
    if isinstance(exc, RequestValidationError):
        return str(exc.errors()), HTTP_422_UNPROCESSABLE_ENTITY

    status_code = HTTP_500_INTERNAL_SERVER_ERROR
    for exc_type, mapped_status in ERROR_MAPPING.items():
        if isinstance(exc, exc_type):
            status_code = mapped_status
            break
    detail = str(exc.args[0] if exc.args else exc)
    return detail, status_code


def _create_error_response(
    error_type: str,
    detail: str,
    status_code: int,
    correlation_id: str | None,
) -> JSONResponse:
    """Create JSON error response with optional correlation ID."""
    response = JSONResponse(
        status_code=status_code,
        content={
            "error": error_type,
            "message": detail,
            "status_code": status_code,
            "correlation_id": correlation_id if correlation_id else "unknown",
        },
    )
    if correlation_id:
        response.headers["X-Request-ID"] = correlation_id
    return response


async def handle_exception(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle any exception and return a JSON response.

    Args:
    ----
        request: The request that caused the exception
        exc: The exception to handle

    Returns:
    -------
        A JSON response with error details
    """
    correlation_id = getattr(request.state, "correlation_id", None)
    error_type = exc.__class__.__name__
    detail, status_code = _get_error_detail(exc)

    log = logger.error if status_code >= HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
    log(
        "request_error",
        error_type=error_type,
        error_message=detail,
        status_code=status_code,
        path=request.url.path,
        method=request.method,
        correlation_id=correlation_id,
    )
    return _create_error_response(error_type, detail, status_code, correlation_id)


def register_exception_handlers(app: FastAPI) -> None:
    """Route FastAPI's own exception handling through :func:`handle_exception`."""
    app.add_exception_handler(HTTPException, handle_exception)
    app.add_exception_handler(RequestValidationError, handle_exception)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to turn uncaught exceptions into consistent JSON responses."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and handle errors.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers or error response
        """
        try:
            return await call_next(request)
        except Exception as exc:
            return await handle_exception(request, exc)
