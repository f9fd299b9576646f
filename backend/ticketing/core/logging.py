"""
Structured logging configuration using structlog.
JSON lines in production, colored console output elsewhere; both go through
the stdlib root logger so uvicorn and SQLAlchemy records share the format.

Customer contact details are masked before rendering so that booking and
webhook log lines never carry a full email address or phone number.
"""

import logging
import sys
from typing import Optional

import structlog

from ticketing.core.config import Settings, get_settings

_MASKED_FIELDS = ("customer_email", "customer_phone", "email", "phone")
_HANDLER_NAME = "ticketing-structlog"
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


def mask_email(value: str) -> str:
    local, _, domain = value.partition("@")
    if not domain:
        return "***"
    return f"{local[:1]}***@{domain}"


def mask_phone(value: str) -> str:
    digits = "".join(ch for ch in value if ch.isdigit())
    if len(digits) < 4:
        return "***"
    return f"******{digits[-4:]}"


def mask_contact_fields(logger, method_name, event_dict):
    """structlog processor: mask contact details in any bound field."""
    for field in _MASKED_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and value:
            masker = mask_email if "email" in field else mask_phone
            event_dict[field] = masker(value)
    return event_dict


PRE_CHAIN = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
    mask_contact_fields,
]


def _renderer(settings: Settings):
    log_format = settings.LOG_FORMAT or ("json" if settings.ENVIRONMENT == "production" else "console")
    if log_format == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()

    structlog.configure(
        processors=[*PRE_CHAIN, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=PRE_CHAIN,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *_renderer(settings)],
        )
    )

    root = logging.getLogger()
    # Re-running setup (tests, reload) must not stack handlers
    root.handlers = [h for h in root.handlers if h.get_name() != _HANDLER_NAME]
    root.addHandler(handler)
    root.setLevel(settings.LOG_LEVEL.upper())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
