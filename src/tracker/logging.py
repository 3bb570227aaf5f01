"""structlog setup for tracker runs.

Every event goes through stdlib logging so third-party loggers share the
same handler. A run binds its window once (``bind_run_context``) and all
later events, from any module, carry ``run_start`` / ``run_end``.
"""

import logging

import structlog

#: Libraries that log every request at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog over the root logger.

    Args:
        log_level: Root level name; unknown names fall back to INFO.
        log_format: ``console`` for interactive runs, ``json`` for scheduled
            runs whose output is collected. Set through ``LOG_FORMAT``.
    """
    if log_format.lower() == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_run_context(start: str, end: str) -> None:
    """Attach the run window to every event logged from here on."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(run_start=start, run_end=end)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
