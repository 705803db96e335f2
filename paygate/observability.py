import logging
import uuid

import structlog
from fastapi import FastAPI, Request

REQUEST_ID_HEADER = "X-Request-ID"


def configure_logging(level: str = "INFO", fmt: str = "json"):
    """Configure structlog for the service.

    ``fmt`` selects the JSON renderer (default, for log shipping) or the
    human readable console renderer for local development.
    """
    if fmt == "console":
        renderers = [structlog.dev.ConsoleRenderer()]
    else:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderers,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def current_request_id() -> str | None:
    return structlog.contextvars.get_contextvars().get("request_id")


def install_request_id_middleware(app: FastAPI):
    """Bind a per-request correlation id into the structlog context."""

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
