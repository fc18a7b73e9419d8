"""Error Handlers — map the EsgAgentError hierarchy and request errors onto HTTP responses.

Invariants:
    - Every error body has the same envelope: {"error": {code, message, category, severity, ...}}
    - Input errors name the offending field when one is known
    - Capacity errors (full task queue) carry a Retry-After header
    - The catch-all never leaks exception text or tracebacks to the caller

Design Decisions:
    - Domain handler first, Pydantic request errors second, bare Exception last
    - 4xx logged at WARNING, 5xx at ERROR: client mistakes are not incidents
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from esg_agent.core.errors import (
    ErrorCategory,
    ErrorSeverity,
    EsgAgentError,
    InvalidInputError,
)

logger = logging.getLogger(__name__)

QUEUE_RETRY_AFTER_SECONDS = 5


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EsgAgentError, handle_agent_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected)


async def handle_agent_error(request: Request, exc: EsgAgentError) -> JSONResponse:
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{exc.code}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "task_id": exc.context.task_id,
            "framework": exc.context.framework,
        },
    )
    body = exc.to_response()
    if isinstance(exc, InvalidInputError) and exc.field:
        body["error"]["field"] = exc.field

    headers = None
    if exc.category is ErrorCategory.CAPACITY:
        headers = {"Retry-After": str(QUEUE_RETRY_AFTER_SECONDS)}
    return JSONResponse(status_code=exc.http_status, content=body, headers=headers)


async def handle_request_validation(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(loc) for loc in err["loc"] if loc != "body"),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected request body on {request.url.path}: {len(details)} issue(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "VALIDATION_ERROR",
                "message": "Request body does not match the expected schema",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.ERROR.value,
                "details": details,
            },
        },
    )


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__} on {request.url.path}",
        exc_info=True,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": ErrorCategory.INTERNAL.value,
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )
