"""Structured logging: structlog everywhere, JSON in deployed environments."""

import contextvars
import logging
import logging.config
import os

import structlog

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default="no-request-id"
)


def get_request_id() -> str:
    """Request ID of the current task, or "no-request-id" outside a request."""
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    """Set the request ID for this task and bind it into every log line."""
    request_id_var.set(request_id)
    structlog.contextvars.bind_contextvars(request_id=request_id)


def _renderer(environment: str):
    if environment == "development":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def configure_logging() -> None:
    """
    Configure structlog and route stdlib logging (uvicorn, sqlalchemy, alembic)
    through the same renderer.

    LOG_LEVEL sets the threshold (default INFO). ENVIRONMENT=development gets
    human-readable console output; anything else gets one JSON object per line.
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    renderer = _renderer(os.getenv("ENVIRONMENT", "development"))

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "processor": renderer,
                    "foreign_pre_chain": shared_processors,
                },
            },
            "handlers": {
                "stdout": {
                    "level": log_level,
                    "class": "logging.StreamHandler",
                    "formatter": "structlog",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"handlers": ["stdout"], "level": log_level},
        }
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
