from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from school_common.envelope import error_response
from school_common.errors import (
    PipelineError,
    RateLimitFailure,
    UpstreamFailure,
    ValidationFailure,
)
from school_common.validation import Issue

logger = logging.getLogger(__name__)


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        logger.error("Upstream failure from %s on %s %s: %s", exc.service, request.method, request.url.path, exc.detail)
    elif exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    headers = None
    if isinstance(exc, RateLimitFailure):
        headers = {"Retry-After": str(exc.retry_after)}
    payload = exc.to_dict()
    return error_response(
        exc.status_code,
        payload["message"],
        code=payload.get("code"),
        issues=payload.get("issues"),
        headers=headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        Issue(path=tuple(str(part) for part in error.get("loc", ())), message=error.get("msg", "Invalid value"))
        for error in exc.errors()
    ]
    return await pipeline_error_handler(request, ValidationFailure(issues))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    else:
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, "Internal server error", code="INTERNAL_ERROR")


def install_exception_handlers(app: FastAPI) -> None:
    """Render every failure as the standard envelope."""
    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
