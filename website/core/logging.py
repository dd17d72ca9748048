"""Structured logging setup for the website and its sync engine."""

import logging
from typing import Any, cast

import structlog
from structlog import dev, processors, stdlib
from structlog.stdlib import BoundLogger

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

APP_LOGGER = "website"


def _shared_processors() -> list[Any]:
    # Applied to structlog events and to records from plain stdlib loggers
    return [
        structlog.contextvars.merge_contextvars,
        stdlib.add_logger_name,
        stdlib.add_log_level,
        stdlib.PositionalArgumentsFormatter(),
        processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S.%f"),
        processors.dict_tracebacks,
    ]


def configure_logging(
    testing: bool = False, level: str = "info", json_logs: bool = True
) -> None:
    """Route structlog through stdlib logging with one stream handler.

    Uvicorn, SQLAlchemy and watchdog log through stdlib loggers; their records
    are rendered by the same formatter as the engine's own events.

    Args:
        testing: Use the console renderer regardless of ``json_logs``
        level: Level name, case insensitive; unknown names mean ``info``
        json_logs: Emit one JSON document per line
    """
    log_level = LOG_LEVELS.get(level.lower(), logging.INFO)
    render_json = json_logs and not testing
    shared = _shared_processors()

    structlog.configure(
        processors=[
            stdlib.filter_by_level,
            *shared,
            processors.format_exc_info,
            processors.JSONRenderer() if render_json else processors.KeyValueRenderer(),
        ],
        context_class=dict,
        logger_factory=stdlib.LoggerFactory(),
        wrapper_class=stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setLevel(log_level)
    handler.setFormatter(
        stdlib.ProcessorFormatter(
            processor=processors.JSONRenderer() if render_json else dev.ConsoleRenderer(),
            foreign_pre_chain=shared,
        )
    )

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers = [handler]

    # The app logger owns the handler too, so it must not propagate twice
    app = logging.getLogger(APP_LOGGER)
    app.setLevel(log_level)
    app.handlers = [handler]
    app.propagate = False


def get_logger(name: str | None = None) -> BoundLogger:
    """Structured logger, named after the calling module when given."""
    if name is None:
        return cast(BoundLogger, structlog.get_logger())
    return cast(BoundLogger, structlog.get_logger(name))


def get_request_logger(request_id: str | None = None) -> BoundLogger:
    """Logger bound to one HTTP request's id."""
    logger = get_logger()
    return logger.bind(request_id=request_id) if request_id else logger
