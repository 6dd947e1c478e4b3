"""
HTTP Response Helpers

Uniform JSON envelope for module routes and the mapping from domain
errors to status codes.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .domain_errors import (
    ALREADY_EXISTS,
    BUSINESS_RULE_VIOLATION,
    CONCURRENCY_CONFLICT,
    FORBIDDEN,
    INVALID_INPUT,
    INVALID_STATE,
    NOT_FOUND,
    UNAUTHORIZED,
    VALIDATION_FAILED,
    DomainError,
)

logger = logging.getLogger(__name__)


INTERNAL_ERROR = "INTERNAL_ERROR"

STATUS_BY_CODE = {
    NOT_FOUND: 404,
    ALREADY_EXISTS: 409,
    INVALID_INPUT: 400,
    VALIDATION_FAILED: 400,
    UNAUTHORIZED: 401,
    FORBIDDEN: 403,
    CONCURRENCY_CONFLICT: 409,
    BUSINESS_RULE_VIOLATION: 422,
    INVALID_STATE: 422,
}


def success_response(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": jsonable_encoder(data)})


def error_response(status_code: int, code: str, message: str, field: Optional[str] = None) -> JSONResponse:
    error = {"code": code, "message": message}
    if field:
        error["field"] = field
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})


def status_for(error: DomainError) -> int:
    return STATUS_BY_CODE.get(error.code, 500)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"Unmapped domain error on {request.method} {request.url.path}: {exc}")
        return error_response(status_code, INTERNAL_ERROR, "An internal error occurred")

    content = {"success": False, "error": exc.to_dict()}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = None
    message = "invalid request"
    if errors:
        first = errors[0]
        location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or None
        message = first.get("msg", message)
    return error_response(400, INVALID_INPUT, message, field)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response(500, INTERNAL_ERROR, "An internal error occurred")


def install_error_handlers(app: FastAPI) -> None:
    """Register the domain error mapping on ``app``."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
