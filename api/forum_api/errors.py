"""HTTP error helpers.

Every API error is an ``HTTPException`` whose detail carries the
``{"error": {"code", "message"}}`` envelope. Validation and unexpected
errors are reported in the same envelope by the handlers installed with
``install_exception_handlers``.
"""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from forum_api.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)


def api_error(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> HTTPException:
    error: dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    return HTTPException(status_code=status_code, detail={"error": error})


def client_error(message: str, details: dict[str, Any] | None = None) -> HTTPException:
    """400 for requests that are well-formed but cannot be applied."""
    return api_error(status.HTTP_400_BAD_REQUEST, "BAD_REQUEST", message, details)


def not_found(resource: str, message: str | None = None) -> HTTPException:
    """404 for a missing resource."""
    return api_error(
        status.HTTP_404_NOT_FOUND,
        "NOT_FOUND",
        message or f"{resource} not found",
    )


def permission_denied(permission: str) -> HTTPException:
    """403 for a missing permission or scope."""
    return api_error(
        status.HTTP_403_FORBIDDEN,
        "FORBIDDEN",
        f"Permission '{permission}' required",
        {"permission": permission},
    )


def conflict(message: str) -> HTTPException:
    return api_error(status.HTTP_409_CONFLICT, "CONFLICT", message)


# --- Application handlers ---


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool, type(None))):
        return value
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


def _envelope(code: str, message: str, request: Request, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "request_id": get_request_id(request),
    }
    if details is not None:
        error["details"] = details
    return {"error": error}


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 with every pydantic error listed under ``details``."""
    errors = [
        {key: _jsonable(value) for key, value in error.items() if key != "url"}
        for error in exc.errors()
    ]
    message = "Validation error"
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", []))
        msg = errors[0].get("msg", message)
        message = f"{field}: {msg}" if field else msg
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_envelope("VALIDATION_ERROR", message, request, errors),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error on %s %s (request %s)",
        request.method,
        request.url.path,
        get_request_id(request),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope("INTERNAL_ERROR", "An unexpected error occurred", request),
    )


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
