"""
Structured logging setup.

Every module logs through structlog with a bound ``component`` so that merge,
catalog and recommendation events can be filtered per subsystem:

    from logger import get_logger

    logger = get_logger(component="profile_service")
    logger.info("Profile merged", user_id=user_id, profile_completion=75)
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog
from structlog.types import BindableLogger, EventDict, WrappedLogger

from config import log_level

SENSITIVE_FIELDS = {"password", "api_key", "token", "secret", "credential", "auth"}


def mask_credentials(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace values of credential-like keys with ``***MASKED***``.

    Matches the whole key or an underscore/hyphen separated prefix or suffix,
    so ``access_token`` is masked but ``author`` is not.
    """
    for key in list(event_dict.keys()):
        key_lower = key.lower()
        for sensitive in SENSITIVE_FIELDS:
            if (
                key_lower == sensitive
                or key_lower.endswith(f"_{sensitive}")
                or key_lower.endswith(f"-{sensitive}")
                or key_lower.startswith(f"{sensitive}_")
                or key_lower.startswith(f"{sensitive}-")
            ):
                event_dict[key] = "***MASKED***"
                break
    return event_dict


def configure_logging(level: str | None = None) -> None:
    """Configure stdlib logging and structlog with JSON output on stdout."""
    level_name = (level or log_level()).upper()
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level_name, logging.INFO),
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            mask_credentials,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(component: Optional[str] = None, **context) -> BindableLogger:
    logger = structlog.get_logger()
    if component:
        logger = logger.bind(component=component)
    if context:
        logger = logger.bind(**context)
    return logger


configure_logging()
