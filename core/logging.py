"""
Logging configuration with JSON formatter for structured logging.
"""
import logging
import sys
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from core.config import Settings, settings as default_settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields."""

    def __init__(self, *args: Any, app_settings: Optional[Settings] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.app_settings = app_settings or default_settings

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        """Add custom fields to log record."""
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = self.formatTime(record, self.datefmt)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        log_record['app_name'] = self.app_settings.app_name
        log_record['environment'] = self.app_settings.app_env

        if record.exc_info:
            log_record['exc_info'] = self.formatException(record.exc_info)


def build_formatter(app_settings: Optional[Settings] = None) -> logging.Formatter:
    """JSON formatter for staging/production, plain text everywhere else."""
    app_settings = app_settings or default_settings
    if app_settings.app_env in ["production", "staging"]:
        return CustomJsonFormatter(
            fmt='%(timestamp)s %(level)s %(name)s %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S',
            app_settings=app_settings,
        )
    return logging.Formatter(
        fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def setup_logging(app_settings: Optional[Settings] = None) -> None:
    """
    Configure application logging.

    Sets up structured JSON logging for production environments
    and human-readable logging for development. Nothing in this package
    calls it; the embedding application does so once at startup.
    """
    app_settings = app_settings or default_settings
    formatter = build_formatter(app_settings)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, app_settings.log_level))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if app_settings.is_development:
        logging.getLogger("forms").setLevel(logging.DEBUG)

    logging.info(
        "Logging configured",
        extra={
            "log_level": app_settings.log_level,
            "environment": app_settings.app_env,
            "json_logging": isinstance(formatter, CustomJsonFormatter)
        }
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the given name.

    Args:
        name: The name of the logger (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """Context manager for adding contextual information to logs."""

    def __init__(self, logger: Optional[logging.Logger] = None, **kwargs: Any):
        """
        Initialize log context.

        Args:
            logger: Logger to write to (defaults to this module's logger)
            **kwargs: Key-value pairs to add to log context
        """
        self.context = kwargs
        self.logger = logger or get_logger(__name__)

    def __enter__(self) -> 'LogContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is not None and issubclass(exc_type, Exception):
            self.logger.error(
                f"Exception in context: {exc_type.__name__}",
                extra=self.context,
                exc_info=True
            )

    def log(self, level: str, message: str, **extra_fields: Any) -> None:
        """
        Log a message with context.

        Args:
            level: Log level (debug, info, warning, error, critical)
            message: Log message
            **extra_fields: Additional fields to include in log
        """
        log_method = getattr(self.logger, level.lower())
        merged_context = {**self.context, **extra_fields}
        log_method(message, extra=merged_context)
