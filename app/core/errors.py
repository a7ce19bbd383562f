import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import DirectoryError
from app.schemas.response import ErrorResponse, FieldError

logger = logging.getLogger(__name__)


def _field_errors(exc: RequestValidationError) -> list[FieldError]:
    """Flatten Pydantic errors to (field, message) pairs; the leading 'body'/'query' is dropped."""
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path"):
            loc = loc[1:]
        errors.append(FieldError(field=".".join(loc), message=err.get("msg", "Invalid value")))
    return errors


def add_exception_handlers(app: FastAPI):
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(DirectoryError)
    async def directory_exception_handler(request: Request, exc: DirectoryError):
        if exc.status_code >= 500:
            logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                message=exc.message,
                code=exc.code,
                errors=exc.details
            ).model_dump()
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """
        Handles standard HTTP exceptions (401 from auth, unknown routes, etc.)
        """
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                message=str(exc.detail),
                code="HTTP_ERROR",
                errors=None
            ).model_dump(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """
        Handles Pydantic validation errors as 400 with per-field detail.
        """
        errors = _field_errors(exc)
        logger.info(f"Validation failed on {request.method} {request.url.path}: {[e.field for e in errors]}")
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(
                message="Invalid request data",
                code="VALIDATION_ERROR",
                errors=[e.model_dump() for e in errors]
            ).model_dump()
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions. Never leaks exception detail.
        """
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                message="Internal server error",
                code="INTERNAL_ERROR",
                errors=None
            ).model_dump()
        )
