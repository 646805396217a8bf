"""
Credscore — Logging
structlog setup shared by the API process, the arq worker and scripts.
"""
import logging
from typing import Optional

import structlog


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    """Configure structlog once per process. Defaults come from settings."""
    if level is None or json is None:
        from credscore.config import settings
        level = level or settings.LOG_LEVEL
        json = settings.LOG_JSON if json is None else json

    min_level = logging.getLevelName(level.upper())
    if not isinstance(min_level, int):
        min_level = logging.INFO

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        cache_logger_on_first_use=True,
    )
