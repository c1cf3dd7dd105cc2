"""
Common API utilities: the error envelope, exception handlers and helpers
shared across API modules.
"""
import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config.settings import get_settings

logger = logging.getLogger(__name__)

# Messages for query/path parameters whose constraints FastAPI checks itself
PARAMETER_MESSAGES = {
    "status": "Status filter must be one of: Applied, Interview, Rejected, Offer",
    "search": "Search query too long",
    "limit": "Limit must be between 1 and 100",
    "offset": "Offset must be a non-negative integer",
    "job_id": "Invalid ID format. Must be a valid UUID",
}

REQUEST_SOURCES = ("body", "query", "path", "header", "cookie")

INVALID_JSON_MESSAGE = "Invalid JSON body"


class APIError(Exception):
    """An error that maps directly onto the JSON error envelope."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "INTERNAL_ERROR",
        errors: Optional[List[Dict[str, str]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.errors = errors
        self.headers = headers


def error_response(
    status_code: int,
    message: str,
    code: str,
    errors: Optional[List[Dict[str, str]]] = None,
    stack: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "message": message, "code": code}
    if errors:
        content["errors"] = errors
    if stack:
        content["stack"] = stack
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def check_resource_exists(resource: Optional[object], resource_type: str) -> None:
    """
    Raise a 404 APIError if the resource is missing.

    Callers pass the result of an owner-scoped lookup, so "does not exist" and
    "belongs to someone else" produce the same response.
    """
    if resource is None:
        raise APIError(f"{resource_type} not found", status.HTTP_404_NOT_FOUND, "NOT_FOUND")


def handle_store_error(db: Session, error: Exception, message: str, code: str) -> APIError:
    """
    Log a storage failure with full detail and return a generic APIError for the caller.

    Args:
        db: Session to roll back
        error: The exception raised by the store
        message: Caller-facing message for the failure category
        code: Failure category code (FETCH_ERROR, CREATE_ERROR, ...)
    """
    logger.error("%s [%s]: %s", message, code, error, exc_info=error)
    db.rollback()
    return APIError(message, status.HTTP_500_INTERNAL_SERVER_ERROR, code)


def _field_label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def format_validation_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    """Flatten pydantic errors into ``[{field, message}]``."""
    details = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            # loc is ("body", <character offset>)
            details.append({"field": "body", "message": INVALID_JSON_MESSAGE})
            continue
        loc = list(error.get("loc", ()))
        source = loc.pop(0) if loc and loc[0] in REQUEST_SOURCES else None
        field = ".".join(str(part) for part in loc) or "body"

        if source in ("query", "path") and field in PARAMETER_MESSAGES:
            message = PARAMETER_MESSAGES[field]
        elif error.get("type") == "missing":
            message = f"{_field_label(field)} is required"
        else:
            message = error.get("msg", "Invalid value")
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
        details.append({"field": field, "message": message})
    return details


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s [%s]", request.method, request.url.path, exc.message, exc.code)
    return error_response(exc.status_code, exc.message, exc.code, exc.errors, headers=exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = format_validation_errors(exc)
    logger.debug("Validation failed for %s %s: %s", request.method, request.url.path, errors)
    return error_response(
        status.HTTP_400_BAD_REQUEST, "Validation failed", "VALIDATION_ERROR", errors
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        return error_response(exc.status_code, f"Route not found: {request.url.path}", "ROUTE_NOT_FOUND")
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return error_response(exc.status_code, f"Method {request.method} not allowed", "METHOD_NOT_ALLOWED")
    return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR", headers=getattr(exc, "headers", None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if get_settings().is_development():
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or type(exc).__name__, "INTERNAL_ERROR", stack=stack
        )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
