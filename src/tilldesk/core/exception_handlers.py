# File: src/tilldesk/core/exception_handlers.py
"""Global exception handlers for FastAPI."""

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tilldesk.core.errors import AppError, InternalError
from tilldesk.core.logging import get_logger

logger = get_logger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Handle all AppError exceptions and convert to JSON response.

    Returns standardized error format:
    {
        "code": "VALIDATION_ERROR",
        "message": "Declared opening balance (300.00) does not match calculated total (250.00). ...",
        "details": {"declared": "300.00", "calculated": "250.00", "difference": "50.00"}
    }
    """
    if isinstance(exc, InternalError):
        logger.error(
            "app_error",
            code=exc.code,
            message=exc.message,
            path=request.url.path,
        )
    else:
        logger.info(
            "app_error",
            code=exc.code,
            status_code=exc.status_code,
            path=request.url.path,
        )

    error_response = exc.to_response()
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Log HTTP exceptions and return them as JSON."""
    logger.error(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app) -> None:
    """Register all custom exception handlers with FastAPI app."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
