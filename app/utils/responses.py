"""
Standardized error responses
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import DomainError, ErrorCode
from app.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details
    )
    return JSONResponse(
        content=response.model_dump(mode="json"),
        status_code=status_code
    )

def rate_limit_error() -> JSONResponse:
    """Create rate limit error"""
    return error_response(
        message="Rate limit exceeded. Please try again later.",
        error_code="RATE_LIMITED",
        status_code=status.HTTP_429_TOO_MANY_REQUESTS
    )

async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map a domain error to its HTTP status and error envelope"""
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code.value}")
    return error_response(
        message=exc.message,
        error_code=exc.code.value,
        details=exc.details,
        status_code=exc.status_code
    )

async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies with the same envelope"""
    errors = [
        {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    return error_response(
        message="Validation failed",
        error_code=ErrorCode.VALIDATION_ERROR.value,
        details=errors,
        status_code=422
    )

def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
