"""
Logging Configuration and Utilities

structlog processors run first (request context, audit tagging, secret
redaction) and hand records to stdlib handlers, which write JSON through
python-json-logger or plain text depending on ``LOG_FORMAT``.
"""

import sys
import logging
from typing import Any, Dict, Mapping, Optional
from datetime import datetime, timezone
from contextvars import ContextVar

import structlog
from pythonjsonlogger.json import JsonFormatter

from .config import settings

SERVICE_NAME = 'review-dashboard'

# Set by RequestIDMiddleware and the current-manager dependency
request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
manager_id: ContextVar[Optional[str]] = ContextVar('manager_id', default=None)

SENSITIVE_KEYS = (
    'password', 'token', 'secret', 'api_key', 'credentials',
    'authorization', 'cookie',
)

# Records from these loggers form the moderation audit trail
AUDIT_LOGGERS = {
    'review_dashboard.services.review.moderation_service': 'moderation',
    'review_dashboard.services.review.ingestion_service': 'ingestion',
    'review_dashboard.api.routes.auth': 'auth',
}

LIBRARY_LOG_LEVELS = {
    'uvicorn.access': logging.WARNING,
    'uvicorn.error': logging.INFO,
    'redis': logging.WARNING,
    'httpx': logging.WARNING,
    'httpcore': logging.WARNING,
    'aiosqlite': logging.WARNING,
}


def add_request_context(logger, method_name, event_dict):
    """Attach request id, acting manager and service identity"""
    for key, var in (('request_id', request_id), ('manager_id', manager_id)):
        value = var.get()
        if value:
            event_dict.setdefault(key, value)

    event_dict['timestamp'] = datetime.now(timezone.utc).isoformat()
    event_dict['service'] = SERVICE_NAME
    event_dict['environment'] = settings.ENVIRONMENT
    return event_dict


def tag_audit_events(logger, method_name, event_dict):
    category = AUDIT_LOGGERS.get(event_dict.get('logger', ''))
    if category:
        event_dict['audit'] = category
    return event_dict


def _redact(values: Dict[str, Any]) -> None:
    for key, value in values.items():
        if key == 'event':
            continue
        if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
            values[key] = '[REDACTED]'
        elif isinstance(value, dict):
            _redact(value)


def redact_secrets(logger, method_name, event_dict):
    """Mask credentials before they reach any handler"""
    _redact(event_dict)
    return event_dict


class ReviewJsonFormatter(JsonFormatter):
    """One JSON object per record, with the source location folded into one field"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['location'] = f"{record.module}:{record.funcName}:{record.lineno}"
        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)


class LoggingConfig:
    """Centralized logging configuration"""

    TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    JSON_FORMAT = '%(asctime)s %(name)s %(levelname)s %(message)s'

    @staticmethod
    def configure_structured_logging():
        """Configure structlog to hand records to the stdlib handlers"""
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                add_request_context,
                tag_audit_events,
                redact_secrets,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.UnicodeDecoder(),
                structlog.stdlib.render_to_log_kwargs,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    @classmethod
    def build_handler(cls, level: int) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if settings.logging.LOG_FORMAT == "json":
            handler.setFormatter(ReviewJsonFormatter(cls.JSON_FORMAT))
        else:
            handler.setFormatter(logging.Formatter(cls.TEXT_FORMAT))
        return handler

    @classmethod
    def configure_standard_logging(cls):
        level = getattr(logging, settings.logging.LOG_LEVEL)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()
        root_logger.addHandler(cls.build_handler(level))

        cls.apply_library_levels(LIBRARY_LOG_LEVELS)

    @staticmethod
    def apply_library_levels(levels: Mapping[str, int]):
        for name, level in levels.items():
            logging.getLogger(name).setLevel(level)
        # SQL echo is opt-in
        logging.getLogger("sqlalchemy.engine").setLevel(
            logging.INFO if settings.logging.LOG_SQL_QUERIES else logging.WARNING
        )


class LoggerAdapter:
    """Application logger.

    Routes through structlog when structured logging is enabled so the
    context and redaction processors run, and falls back to the plain stdlib
    logger otherwise. Both paths accept ``extra=`` dicts.
    """

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)
        self._struct_logger = structlog.get_logger(name)

    def _log(self, level: int, message: str, *args, **kwargs):
        extra = kwargs.pop('extra', None) or {}

        if settings.logging.ENABLE_STRUCTURED_LOGGING:
            self._struct_logger.log(level, message, *args, **kwargs, **extra)
        else:
            self.logger.log(level, message, *args, extra=extra, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: str, *args, **kwargs):
        kwargs.setdefault('exc_info', True)
        self._log(logging.ERROR, message, *args, **kwargs)


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """
    Get configured logger instance.

    Args:
        name: Logger name, usually ``__name__``

    Returns:
        Logger adapter
    """
    return LoggerAdapter(name or 'review_dashboard')


def setup_logging():
    """Setup logging configuration"""
    LoggingConfig.configure_standard_logging()

    if settings.logging.ENABLE_STRUCTURED_LOGGING:
        LoggingConfig.configure_structured_logging()

    logger = get_logger(__name__)
    logger.info("Logging configured", extra={
        'log_level': settings.logging.LOG_LEVEL,
        'log_format': settings.logging.LOG_FORMAT,
        'structured_logging': settings.logging.ENABLE_STRUCTURED_LOGGING,
    })


setup_logging()
