"""Error types raised by services and the middleware that renders them."""

import logging
import uuid
from typing import Any, Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError as PostgrestAPIError

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class APIError(Exception):
    """Base class for failures a client should see.

    Subclasses fix the status code and error type; raising one anywhere
    below a route produces the standard error body.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "api_error"
    default_message: str = "Request failed"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        error_type: str | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type
        self.details = details
        super().__init__(self.message)


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"
    default_message = "Resource not found"


class ValidationError(APIError):
    """Invalid input, illegal status transition or unmet precondition."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"
    default_message = "Validation error"


class AuthenticationError(APIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"
    default_message = "Authentication required"


class AuthorizationError(APIError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "authorization_error"
    default_message = "Access denied"


class ConflictError(APIError):
    """The order, booking or event changed underneath the request."""

    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"
    default_message = "Conflict"


class ServiceUnavailableError(APIError):
    """A backing service is not configured or not reachable."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "service_unavailable"
    default_message = "Service temporarily unavailable"


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    request_id: str,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Render the standard error body and echo the request id header."""
    body = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers={REQUEST_ID_HEADER: request_id},
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Turn exceptions escaping the routes into JSON error responses.

    ``APIError`` keeps its own status and message. Database errors that no
    service translated become a 503 without leaking PostgREST details, and
    anything else is logged with its traceback and answered with a 500.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: The route response or the rendered error.
    """
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

    try:
        return await call_next(request)

    except APIError as e:
        logger.warning(
            "%s %s failed: %s - %s",
            request.method,
            request.url.path,
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(e.error_type, e.message, e.status_code, request_id, e.details)

    except PostgrestAPIError as e:
        logger.error(
            "Database error on %s %s: %s (%s)",
            request.method,
            request.url.path,
            e.message,
            e.code,
            extra={"request_id": request_id},
        )
        return create_error_response(
            "database_error",
            "The database could not complete the request",
            status.HTTP_503_SERVICE_UNAVAILABLE,
            request_id,
        )

    except Exception:
        logger.exception(
            "Unhandled exception on %s %s",
            request.method,
            request.url.path,
            extra={"request_id": request_id},
        )
        return create_error_response(
            "internal_error",
            "An unexpected error occurred",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id,
        )
