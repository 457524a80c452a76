"""Global error handlers: every error leaves as JSON with the request id attached."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from padel.errors import PadelError

logger = structlog.get_logger()


def _error_response(status_code: int, detail: Any, **extra: Any) -> JSONResponse:
    content: dict[str, Any] = {"detail": detail, **extra}
    request_id = structlog.contextvars.get_contextvars().get("request_id")
    if request_id is not None:
        content["request_id"] = request_id
    return JSONResponse(status_code=status_code, content=content)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw ``ctx`` objects, which may not serialize."""
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(PadelError)
    async def domain_exception_handler(request: Request, exc: PadelError) -> JSONResponse:
        """Match, registration and feedback rule violations, with their error code."""
        logger.info("domain_error", path=request.url.path, code=exc.code, error=str(exc))
        return _error_response(exc.status_code, str(exc), code=exc.code)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(422, "Validation error", errors=jsonable_errors(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions. The session rolls back on its own."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return _error_response(500, "Internal server error")
