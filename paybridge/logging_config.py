"""
structlog setup for the payment bridge.

Every line is one JSON object on stdout carrying the service name, the
deployment environment and whatever the request middleware bound to the
context (request_id, method, path).
"""
import logging
import sys
from typing import Any, Dict, Optional

import structlog

from .config import settings


def add_app_context(logger: Any, method_name: str, event_dict: Dict) -> Dict:
    """Tag entries with the service name and environment from settings."""
    event_dict.setdefault("app", settings.APP_NAME)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def configure_logging(level: Optional[str] = None):
    """Configure stdlib logging and structlog; ``level`` defaults to LOG_LEVEL."""
    log_level = logging.getLevelName((level or settings.LOG_LEVEL).upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_app_context,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            # gateway and order messages are Chinese; keep them readable
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


def get_logger(name: str = __name__):
    return structlog.get_logger(name)
