import logging
import logging.config
import re
import time
from typing import Dict

import structlog

from bookshelf.core.config import settings

HEALTH_CHECK_PATHS = ("/health", "/ready", "/live")

# Loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "botocore", "boto3", "urllib3", "asyncio", "sqlalchemy.engine")

_BOOK_PATH = re.compile(r"/books/(?P<book_id>\d+)(?:/documents/(?P<document_id>\d+))?(?:/|$)")


def configure_logging() -> None:
    """Configure structlog and stdlib logging from settings."""
    json_output = settings.LOG_FORMAT == "json"

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = (
        {"class": "pythonjsonlogger.json.JsonFormatter", "format": "%(asctime)s %(name)s %(levelname)s %(message)s"}
        if json_output
        else {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"}
    )
    quiet_level = settings.LOG_LEVEL if settings.DEBUG else "WARNING"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {"health_check": {"()": HealthCheckFilter}},
            "formatters": {"default": formatter},
            "handlers": {
                "default": {"class": "logging.StreamHandler", "formatter": "default", "stream": "ext://sys.stdout"},
                "access": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "stream": "ext://sys.stdout",
                    "filters": ["health_check"],
                },
            },
            "loggers": {
                "": {"level": settings.LOG_LEVEL, "handlers": ["default"]},
                "uvicorn.access": {"level": "INFO", "handlers": ["access"], "propagate": False},
                **{name: {"level": quiet_level} for name in QUIET_LOGGERS},
            },
        }
    )


def path_context(path: str) -> Dict[str, int]:
    """Extract book and document ids from a request path."""
    match = _BOOK_PATH.search(path)
    if not match:
        return {}
    return {key: int(value) for key, value in match.groupdict().items() if value is not None}


class HealthCheckFilter(logging.Filter):
    """Drop uvicorn access lines for health check endpoints."""

    def filter(self, record):
        message = record.getMessage()
        return not any(f" {path} " in message for path in HEALTH_CHECK_PATHS)


class RequestLoggingMiddleware:
    """Binds request context for every log line and logs completed requests.

    ``book_id`` and ``document_id`` are taken from the path so service and
    store logs emitted while handling the request carry them.
    """

    def __init__(self, app):
        self.app = app
        self.logger = structlog.get_logger("request")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope["path"]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(method=scope["method"], path=path, **path_context(path))

        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            if path not in HEALTH_CHECK_PATHS:
                self.logger.info(
                    "Request completed",
                    status_code=status_code,
                    duration=round(time.perf_counter() - start, 4),
                )
            structlog.contextvars.clear_contextvars()


def setup_request_logging(app):
    app.add_middleware(RequestLoggingMiddleware)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def get_api_logger() -> structlog.stdlib.BoundLogger:
    return get_logger("api")


def get_db_logger() -> structlog.stdlib.BoundLogger:
    return get_logger("database")


def get_auth_logger() -> structlog.stdlib.BoundLogger:
    return get_logger("auth")


def get_service_logger(service_name: str) -> structlog.stdlib.BoundLogger:
    return get_logger(f"service.{service_name}")
