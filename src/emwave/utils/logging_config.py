"""Logging configuration for the assembly engine."""

import functools
import json
import logging
import logging.config
import time
import traceback
from datetime import datetime
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        for key in ("error_code", "error_context", "operation", "duration_ms"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str, ensure_ascii=False)


def setup_logging(
    log_level: str = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None,
    enable_structured_logging: bool = False,
) -> None:
    """Setup logging for the ``emwave`` logger hierarchy.

    Parameters
    ----------
    log_level : str, optional
        Level for the ``emwave`` loggers, by default "INFO"
    log_format : str, optional
        Format string for the console handler
    log_file : str, optional
        Also write records to this file when given
    enable_structured_logging : bool, optional
        Use JSON records for the file handler
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": log_format,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "structured": {"()": StructuredFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "emwave": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "structured" if enable_structured_logging else "standard",
            "filename": log_file,
        }
        config["loggers"]["emwave"]["handlers"].append("file")

    logging.config.dictConfig(config)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Level: {log_level}")


def get_logger(name: str) -> logging.Logger:
    """Get logger with standard configuration.

    Parameters
    ----------
    name : str
        Logger name

    Returns
    -------
    logging.Logger
        Logger instance
    """
    return logging.getLogger(name)


class PerformanceLogger:
    """Context manager for performance logging."""

    def __init__(
        self, operation_name: str, logger: logging.Logger, min_log_duration: float = 0.0
    ):
        self.operation_name = operation_name
        self.logger = logger
        self.min_log_duration = min_log_duration
        self.start_time = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        if self.duration_ms >= self.min_log_duration:
            self.logger.debug(
                f"Completed operation: {self.operation_name} in {self.duration_ms:.3f} ms",
                extra={
                    "operation": self.operation_name,
                    "duration_ms": self.duration_ms,
                },
            )


def log_performance(operation_name: str, min_duration: float = 0.0):
    """Decorator for performance logging.

    Parameters
    ----------
    operation_name : str
        Name of the operation
    min_duration : float, optional
        Minimum duration to log (seconds)

    Examples
    --------
    >>> @log_performance("assemble_element")
    ... def assemble(element):
    ...     ...
    """

    def decorator(func):
        logger = get_logger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with PerformanceLogger(operation_name, logger, min_duration * 1000):
                return func(*args, **kwargs)

        return wrapper

    return decorator
