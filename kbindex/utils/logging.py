"""structlog configuration for kbindex.

One processor chain (context vars, level, ISO timestamp, stack info) feeds
one of two renderers: a coloured console renderer while developing and a
JSON renderer in production (``APP_ENV=production``) or when ``json_output``
is requested.  Records emitted through the standard-library ``logging``
module by httpx, openai and watchfiles are rendered by the same chain, so a
log stream never mixes formats.

Modules obtain loggers with ``structlog.get_logger(logger_name=__name__)``
or :func:`get_logger`, and log snake_case events with key/value context::

    logger.info("document_processed", source=name, chunks_total=12)
"""

import logging
import os
import sys

import structlog

# Libraries that log every request or raw file-system event at INFO.
_CHATTY_LOGGERS = ("watchfiles", "httpx", "httpcore", "openai")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and the root stdlib logger.

    Args:
        log_level: Level name (DEBUG, INFO, WARNING, ERROR).
        json_output: Render JSON regardless of ``APP_ENV``.

    Returns:
        A logger bound to the new configuration.
    """
    level_name = log_level.upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    production = os.environ.get("APP_ENV", "development") == "production"
    renderer: structlog.types.Processor
    if json_output or production:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    processors = _shared_processors()
    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *processors,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger tagged with *name*, configuring defaults first if needed."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
