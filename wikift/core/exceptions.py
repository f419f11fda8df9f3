from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

logger = logging.getLogger("uvicorn.error")

STORE_CONSTRAINT_VIOLATION = "STORE_CONSTRAINT_VIOLATION"
STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
USER_NOT_FOUND = "USER_NOT_FOUND"
FOLLOW_RELATION_NOT_FOUND = "FOLLOW_RELATION_NOT_FOUND"
SELF_FOLLOW_NOT_ALLOWED = "SELF_FOLLOW_NOT_ALLOWED"


class CustomHTTPException(Exception):
    """A custom HTTPException that we can use for additional context."""
    def __init__(self, status_code: int, detail: str, error_code: str = None, headers: dict = None):
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code
        self.headers = headers
        super().__init__(detail)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle validation errors and return a structured JSON response."""
    logger.error(f"Validation error on {request.url}: {exc.errors()}")

    errors = exc.errors()
    # Sanitize un-serializable objects in ctx
    for error in errors:
        ctx = error.get("ctx")
        if ctx and isinstance(ctx.get("error"), Exception):
            ctx["error"] = str(ctx["error"])

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors,
            "message": "Invalid user directory request. Check the ids, username and limits sent.",
        },
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Custom HTTP exception handler for better error responses."""
    if isinstance(exc, CustomHTTPException):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"Custom HTTP error on {request.url}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                "error_code": exc.error_code
            },
            headers=exc.headers or {},
        )
    elif isinstance(exc, HTTPException):
        logger.error(f"HTTP error on {request.url}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers or {},
        )

    logger.error(f"Unexpected error on {request.url}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={"detail": "The user directory could not complete the request"},
    )


async def store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Map errors surfaced unchanged by the directory onto HTTP responses."""
    if isinstance(exc, IntegrityError):
        logger.error(f"Constraint violation on {request.url}: {exc.orig}")
        return JSONResponse(
            status_code=409,
            content={
                "detail": "The request conflicts with existing data",
                "error_code": STORE_CONSTRAINT_VIOLATION
            },
        )

    logger.error(f"Store error on {request.url}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "The user store is unavailable",
            "error_code": STORE_UNAVAILABLE
        },
    )
