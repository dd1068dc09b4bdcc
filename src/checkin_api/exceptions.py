"""FastAPI exception handlers for converting CheckinError to HTTP responses.

The ErrorCode-to-HTTP status mapping follows REST conventions:
- 400 Bad Request: Malformed submissions and invalid data
- 401 Unauthorized: Webhook signature verification failed
- 404 Not Found: Unknown guest
- 422 Unprocessable Entity: Request body failed schema validation

Usage:
    from checkin_api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_404_NOT_FOUND,
    HTTP_422_UNPROCESSABLE_ENTITY,
)

from checkin.models.errors import CheckinError, ErrorCode
from checkin_api.models.common import format_validation_errors

logger = logging.getLogger(__name__)

# Map ErrorCode to HTTP status codes
ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.MALFORMED_SUBMISSION: HTTP_400_BAD_REQUEST,
    ErrorCode.VALIDATION_ERROR: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SIGNATURE: HTTP_401_UNAUTHORIZED,
    ErrorCode.GUEST_NOT_FOUND: HTTP_404_NOT_FOUND,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode.

    Args:
        code: The ErrorCode to map

    Returns:
        HTTP status code, defaults to 400 if not explicitly mapped.
    """
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def checkin_error_handler(request: Request, exc: CheckinError) -> JSONResponse:
    """Handle CheckinError exceptions and convert to JSON response.

    Args:
        request: The incoming request
        exc: The CheckinError exception

    Returns:
        JSONResponse with error details and appropriate status code.
    """
    status_code = get_http_status_for_error(exc.code)
    logger.info("%s %s -> %d %s", request.method, request.url.path, status_code, exc.code.value)
    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Wrap FastAPI validation errors in the standard error body."""
    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        content=format_validation_errors(list(exc.errors())).model_dump(mode="json"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(CheckinError, checkin_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
