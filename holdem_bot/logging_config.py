"""Structured logging for the bot.

structlog renders every record, including the f-string records of modules
that log through the standard library. Development gets a colored console,
production one JSON object per line. Commands bind channel_id/user_id so
every record emitted while handling them carries both.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

# discord.py logs every gateway event at INFO
NOISY_LOGGERS = ("discord", "discord.gateway", "discord.client", "discord.http")


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    app_env: str = "development",
) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        log_level: Root level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Force JSON output outside production
        app_env: "production" always logs JSON
    """
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_logs or app_env == "production":
        renderer: Processor = structlog.processors.JSONRenderer()
        pre_chain.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=pre_chain + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level.upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Usage: get_logger(__name__).info("move_submitted", action="fold")"""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach key/values to every record of the current task."""
    structlog.contextvars.bind_contextvars(**kwargs)
