"""
Centralized logging configuration.
Structured logging for audit trails (report submissions, sync outcomes,
account provisioning), performance timing and debugging.
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

ROOT_LOGGER_NAME = "mktdash"


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for the rotating file handler.
    One log record per line so the file can be shipped to any log indexer.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_data = getattr(record, 'extra_data', None)
        if extra_data:
            log_entry.update(extra_data)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class StructuredLogger:
    """
    Wrapper around a standard logger accepting structured keyword fields.

    ``logger.info("Report synced", report_id=7, range="Sheet1!A5:L5")``
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def _log_with_extra(self, level: int, message: str, exc_info: bool = False, **kwargs):
        extra_data = {k: v for k, v in kwargs.items() if v is not None}
        self.logger.log(level, message, exc_info=exc_info, extra={'extra_data': extra_data})

    def info(self, message: str, **kwargs):
        self._log_with_extra(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log_with_extra(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log_with_extra(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs):
        self._log_with_extra(logging.DEBUG, message, **kwargs)


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> None:
    """
    Setup application logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for JSON log output
        enable_console: Whether to log to stdout
    """
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JSONFormatter,
            },
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S"
            }
        },
        "handlers": {},
        "loggers": {
            ROOT_LOGGER_NAME: {
                "level": log_level,
                "handlers": [],
                "propagate": False
            },
            "uvicorn": {
                "level": "INFO",
                "handlers": [],
                "propagate": False
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
                "handlers": [],
                "propagate": False
            },
            # google client discovery is chatty at INFO
            "googleapiclient.discovery_cache": {
                "level": "ERROR",
                "handlers": [],
                "propagate": False
            },
        },
        "root": {
            "level": log_level,
            "handlers": []
        }
    }

    handler_names = []
    if enable_console:
        config["handlers"]["console"] = {
            "class": "logging.StreamHandler",
            "stream": sys.stdout,
            "formatter": "standard",
            "level": log_level
        }
        handler_names.append("console")

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,  # 10MB
            "backupCount": 5,
            "formatter": "json",
            "level": log_level
        }
        handler_names.append("file")

    for logger_cfg in config["loggers"].values():
        logger_cfg["handlers"].extend(handler_names)
    config["root"]["handlers"].extend(handler_names)

    logging.config.dictConfig(config)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger namespaced under the application root logger.

    Args:
        name: Logger name (typically __name__)
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return StructuredLogger(name)
    return StructuredLogger(f"{ROOT_LOGGER_NAME}.{name}")


def log_business_event(
    event_type: str,
    details: Dict[str, Any],
    actor_id: Optional[int] = None,
    request_id: Optional[str] = None
) -> None:
    """
    Log business events for audit trails.

    Args:
        event_type: Type of business event (e.g. 'report_submitted', 'report_synced')
        details: Event-specific details
        actor_id: Account that triggered the event, if any
        request_id: Request ID for tracing
    """
    audit_logger = get_logger("audit")
    audit_logger.info(
        f"Business event: {event_type}",
        event_type=event_type,
        actor_id=actor_id,
        request_id=request_id,
        **details
    )


def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    """Log the duration of an operation in milliseconds."""
    perf_logger = get_logger("performance")
    data = {"duration_ms": round(duration_ms, 2)}
    if additional_data:
        data.update(additional_data)

    perf_logger.info(
        f"Performance: {operation}",
        operation=operation,
        **data
    )
