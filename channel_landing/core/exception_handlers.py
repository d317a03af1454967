"""
Global exception handlers.

Registered on the FastAPI app so that routes raise and the response body is
formatted in one place.
"""

import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from channel_landing.core.errors import AppError, create_api_error, error_type_for

logger = logging.getLogger(__name__)


async def app_error_handler(request: Request, exc: AppError):
    """
    Handle every AppError subclass
    """
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} [{exc.status_code}] {request.url.path}: {exc.message} {exc.details or ''}")
    else:
        logger.info(f"{type(exc).__name__} [{exc.status_code}] {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=create_api_error(
            message=exc.message,
            status_code=exc.status_code,
            details=jsonable_encoder(exc.details) if exc.details is not None else None,
            error_type=error_type_for(exc),
        ),
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handle HTTPException raised by routing (unknown path, wrong method) and FastAPI
    """
    logger.info(f"HTTPException [{exc.status_code}] {request.url.path}: {exc.detail}")

    return JSONResponse(
        status_code=exc.status_code,
        content=create_api_error(message=str(exc.detail), status_code=exc.status_code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Malformed create/update payloads are reported as 400 with field detail
    """
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "")})

    logger.info(f"Validation error {request.url.path}: {fields}")

    return JSONResponse(
        status_code=400,
        content=create_api_error(
            message="Invalid request",
            status_code=400,
            details=fields,
            error_type="validation_error",
        ),
    )


async def general_exception_handler(request: Request, exc: Exception):
    """
    Anything not handled above (500)
    """
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content=create_api_error(message="Internal server error", status_code=500),
    )


def register_exception_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
