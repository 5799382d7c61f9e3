"""structlog setup shared by the service, the workers and uvicorn.

Both structlog events and plain stdlib records (uvicorn, aiosqlite, ccxt)
end up in one root handler, so every line has the same shape. Request and
worker context is carried through ``structlog.contextvars``.
"""

import logging

import structlog

# Loggers that would otherwise duplicate the API request log or flood DEBUG output.
_QUIET_LOGGERS = ("uvicorn.access", "aiosqlite", "ccxt.base.exchange")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def _final_renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)


def setup_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Install the structlog pipeline and a single stderr handler on the root logger.

    ``log_format`` comes from LOG_FORMAT: "json" for machine-readable lines,
    anything else for the console renderer.
    """
    log_format = log_format.lower()
    pre_chain = _pre_chain()

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _final_renderer(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.getLevelNamesMapping().get(log_level.upper(), logging.INFO))

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Named structlog logger; bind context with ``.bind()`` or contextvars."""
    return structlog.get_logger(name)
