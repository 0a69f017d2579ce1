"""Exception handlers that turn errors into the standard response envelope."""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import AuditTrailError, ErrorCode

logger = logging.getLogger(__name__)


async def audittrail_exception_handler(request: Request, exc: AuditTrailError) -> JSONResponse:
    """
    Handle AuditTrail exceptions and return the failure envelope.

    Client errors (4xx) are logged at warning level, server errors at error
    level. The response never contains a stack trace.
    """
    level = logging.WARNING if exc.status_code < 500 else logging.ERROR
    logger.log(
        level,
        f"AuditTrailError: {exc.error_code.value}",
        extra={
            "error_code": exc.error_code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
            "status_code": exc.status_code,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies and parameters become a 400 envelope."""
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg", "")}
        for error in exc.errors()
    ]
    logger.info(
        "Request validation failed",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )
    return JSONResponse(
        status_code=400,
        content={
            "isSuccess": False,
            "data": None,
            "errorCode": ErrorCode.VALIDATION_ERROR.value,
            "errorMessage": "Request validation failed",
            "details": {"errors": errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last resort: log the traceback, return a generic 500."""
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=500,
        content={
            "isSuccess": False,
            "data": None,
            "errorCode": ErrorCode.INTERNAL_ERROR.value,
            "errorMessage": "An unexpected error occurred",
            "details": {},
        },
    )
