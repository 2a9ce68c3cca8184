"""Logging setup for applications embedding the stakeholder registry.

The stores log through ``structlog.get_logger()``; ``configure_logging`` routes
those events, and anything logged through stdlib ``logging``, into one stderr
handler rendered as console text or JSON lines.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from stakeholder_registry.core.config import Settings, settings

# Third-party loggers kept at WARNING whatever the registry's own level is
_QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "asyncpg")


def _app_context(app_env: str):
    def add_app_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("app", "stakeholder_registry")
        event_dict.setdefault("app_env", app_env)
        return event_dict

    return add_app_context


def configure_logging(
    *,
    level: str | None = None,
    log_json: bool | None = None,
    config: Settings | None = None,
) -> None:
    """Install the registry's log pipeline; explicit arguments override ``config``."""
    config = config or settings
    level = (level or config.LOG_LEVEL).upper()
    log_json = config.LOG_JSON if log_json is None else log_json

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _app_context(config.APP_ENV),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if log_json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        pre_chain.append(structlog.processors.format_exc_info)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.WARNING)
    logging.getLogger("stakeholder_registry").setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
