"""Middleware registration."""

from fastapi import FastAPI

from padel.config import Settings
from padel.middleware.error_handler import setup_error_handlers
from padel.middleware.logging import setup_logging
from padel.middleware.request_context import RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure logging, register exception handlers and the request context middleware."""
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)
