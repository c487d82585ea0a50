"""
Logging configuration for the API.

Modules keep using plain stdlib loggers:

    import logging
    logger = logging.getLogger(__name__)

Every record, stdlib or structlog, is rendered by structlog's ProcessorFormatter:
JSON lines when ``log_format`` is "json", a plain console layout otherwise.
Values bound with ``structlog.contextvars`` (the request id set by
RequestLoggingMiddleware) are merged into each line.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from core.config import Settings, settings as default_settings

LOG_DIR = Path("logs")
MAX_LOG_BYTES = 10 * 1024 * 1024

QUIET_LOGGERS = (
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "google_genai",
    "PIL",
    "sqlalchemy.engine",
    "aiosqlite",
)


def _pre_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _formatter(json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_output:
        tail = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        tail = [structlog.dev.ConsoleRenderer(colors=False)]
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*_pre_chain(), structlog.stdlib.ExtraAdder()],
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *tail],
    )


def _rotating_handler(filename: str, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(LOG_DIR / filename, maxBytes=MAX_LOG_BYTES, backupCount=5)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(settings: Optional[Settings] = None):
    """Configure structlog and the root logger for the application."""
    settings = settings or default_settings
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    formatter = _formatter(settings.log_format == "json")

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_pre_chain(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Rotating files in production; errors also go to their own file
    if settings.environment == "production":
        LOG_DIR.mkdir(exist_ok=True)
        root_logger.addHandler(_rotating_handler("api.log", logging.DEBUG, formatter))
        root_logger.addHandler(_rotating_handler("api_errors.log", logging.ERROR, formatter))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.stdlib.get_logger(__name__).info(
        "logging_configured",
        level=settings.log_level,
        format=settings.log_format,
        environment=settings.environment,
    )
