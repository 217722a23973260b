"""
Structured logging for the assistant backend.

Every record, whether emitted through ``structlog`` or the stdlib ``logging``
module (planner, builder, uvicorn), goes through the same processor chain and
carries the request id bound by ``RequestLoggingMiddleware``. Production
writes JSON lines; other environments get a readable console rendering.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings

SERVICE_NAME = "uassistant"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx", "anthropic")


def _add_service(_logger, _method: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def setup_logging(log_level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Install the structlog pipeline on the root logger.

    Args:
        log_level: Override for ``settings.log_level``.
        json_logs: Force JSON (True) or console (False) output. Defaults to
            JSON in production only.
    """
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    if json_logs is None:
        json_logs = settings.is_production

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _add_service,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if json_logs:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
