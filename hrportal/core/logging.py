"""
Logging Configuration and Utilities

Standard-library logging with an optional JSON formatter and optional
structlog processing, plus a context-carrying adapter used by services.
"""

import logging
import logging.handlers
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from pythonjsonlogger import jsonlogger

from hrportal.config.settings import LoggingSettings

# Context variable for unit-of-work tracking
transaction_id: ContextVar[Optional[str]] = ContextVar("transaction_id", default=None)


class WorkflowContextProcessor:
    """Add transaction context to structlog event dicts"""

    def __call__(self, logger, method_name, event_dict):
        tx_id = transaction_id.get()
        if tx_id:
            event_dict["transaction_id"] = tx_id

        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
        event_dict["service"] = "hrportal"
        return event_dict


class SensitiveDataProcessor:
    """Mask values whose keys look sensitive"""

    sensitive_keys = ("password", "token", "secret", "credentials", "authorization")

    def __call__(self, logger, method_name, event_dict):
        self._sanitize(event_dict)
        return event_dict

    def _sanitize(self, event_dict: Dict[str, Any]) -> None:
        for key in list(event_dict.keys()):
            if any(s in key.lower() for s in self.sensitive_keys):
                event_dict[key] = "[REDACTED]"
            elif isinstance(event_dict[key], dict):
                self._sanitize(event_dict[key])


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter for structured logging"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class LoggingConfig:
    """Centralized logging configuration"""

    @staticmethod
    def configure_structured_logging(settings: LoggingSettings) -> None:
        """Configure structlog to route through the standard library"""

        processors = [
            WorkflowContextProcessor(),
            SensitiveDataProcessor(),
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if settings.LOG_FORMAT == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.processors.KeyValueRenderer())

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    @staticmethod
    def configure_standard_logging(settings: LoggingSettings) -> None:
        """Configure standard Python logging"""

        level = getattr(logging, settings.LOG_LEVEL)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        if settings.LOG_FORMAT == "json":
            formatter = CustomJsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        if settings.LOG_FILE:
            log_path = Path(settings.LOG_FILE)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=10 * 1024 * 1024,
                backupCount=5,
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        if settings.LOG_SQL_QUERIES:
            logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
        else:
            logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
        logging.getLogger("redis").setLevel(logging.WARNING)


def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """Apply logging configuration; safe to call more than once."""
    settings = settings or LoggingSettings()
    LoggingConfig.configure_standard_logging(settings)
    if settings.ENABLE_STRUCTURED_LOGGING:
        LoggingConfig.configure_structured_logging(settings)


class LoggerAdapter:
    """Logger wrapper that merges a persistent context into ``extra``"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._context: Dict[str, Any] = {}

    def add_context(self, **kwargs):
        self._context.update(kwargs)
        return self

    def remove_context(self, *keys):
        for key in keys:
            self._context.pop(key, None)
        return self

    def clear_context(self):
        self._context.clear()
        return self

    def _log(self, level: int, message: str, *args, **kwargs):
        extra = dict(kwargs.get("extra") or {})
        extra.update(self._context)
        tx_id = transaction_id.get()
        if tx_id and "transaction_id" not in extra:
            extra["transaction_id"] = tx_id
        kwargs["extra"] = extra
        self.logger.log(level, message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)

    def critical(self, message: str, *args, **kwargs):
        self._log(logging.CRITICAL, message, *args, **kwargs)


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """
    Get a logger adapter.

    Args:
        name: Logger name; defaults to the package logger

    Returns:
        LoggerAdapter wrapping ``logging.getLogger(name)``
    """
    return LoggerAdapter(logging.getLogger(name or "hrportal"))
