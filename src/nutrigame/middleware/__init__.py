"""HTTP middleware and exception handlers."""

from fastapi import FastAPI

from nutrigame.config import Settings
from nutrigame.middleware.error_handler import setup_error_handlers
from nutrigame.middleware.logging import setup_logging
from nutrigame.middleware.request_context import RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)
