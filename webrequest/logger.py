import logging
import os
import json
from logging.handlers import RotatingFileHandler
from datetime import datetime, timezone
from typing import Optional, Dict

# ANSI color codes
COLOR_CODES = {
    "DEBUG": "\033[36m",     # Cyan
    "INFO": "\033[32m",      # Green
    "WARNING": "\033[33m",   # Yellow
    "ERROR": "\033[31m",     # Red
    "CRITICAL": "\033[41m",  # Red background
    "RESET": "\033[0m",      # Reset
}

# Record attributes copied into the log context when present
CONTEXT_FIELDS = ("request_id", "method", "field", "path")

# ------------------ FORMATTERS ------------------

class JSONFormatter(logging.Formatter):
    """Custom formatter for structured (JSON) logs."""
    def __init__(self, default_context: Optional[Dict[str, str]] = None):
        super().__init__()
        self.default_context = default_context or {}

    def format(self, record):
        log_record = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "logger": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }

        context = {**self.default_context}
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                context[key] = str(value)

        if context:
            log_record["context"] = context

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""
    def __init__(self, default_context: Optional[Dict[str, str]] = None, colored: bool = True):
        super().__init__(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.default_context = default_context or {}
        self.colored = colored

    def format(self, record):
        levelname = record.levelname
        if self.colored and levelname in COLOR_CODES:
            record.levelname = f"\u001b[1m{COLOR_CODES[levelname]}{levelname}{COLOR_CODES['RESET']}\u001b[0m"
        try:
            base = super().format(record)
        finally:
            record.levelname = levelname

        context = [
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        ]
        for key, value in self.default_context.items():
            context.append(f"{key}={value}")

        if context:
            base += " " + " ".join(context)
        return base


# ------------------ LOGGER CLASS ------------------

class RequestLoggerAdapter(logging.LoggerAdapter):
    """
    A LoggerAdapter that stamps every record with the id of the request being served.
    """
    def __init__(self, logger, request_id: Optional[str] = None):
        super().__init__(logger, {"request_id": request_id})

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})
        extra.setdefault("request_id", self.extra["request_id"])
        kwargs["extra"] = extra
        return msg, kwargs


class Logger:
    """
    Configurable package logger that supports JSON or text output,
    file or console handlers, and per-request context.
    """

    def __new__(
        cls,
        name: str,
        log_file: Optional[str] = None,
        level: int | str = logging.INFO,
        max_bytes: int = 5_000_000,
        backup_count: int = 3,
        json_logs: bool = False,
        to_console: bool = True,
        request_id: Optional[str] = None,
        default_context: Optional[Dict[str, str]] = None,
        colored_console: bool = True,
    ) -> RequestLoggerAdapter:
        """
        Returns a configured logger adapter directly.
        """
        instance = super(Logger, cls).__new__(cls)
        base_logger = instance._create_logger(
            name=name,
            log_file=log_file,
            level=level,
            max_bytes=max_bytes,
            backup_count=backup_count,
            json_logs=json_logs,
            to_console=to_console,
            default_context=default_context,
            colored_console=colored_console,
        )
        return RequestLoggerAdapter(base_logger, request_id)

    def _create_logger(
        self,
        name: str,
        log_file: Optional[str],
        level: int | str,
        max_bytes: int,
        backup_count: int,
        json_logs: bool,
        to_console: bool,
        default_context: Optional[Dict[str, str]],
        colored_console: bool,
    ) -> logging.Logger:
        """Internal method to configure and return the base logger."""
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = False

        # Avoid duplicate handlers if logger is re-created
        if logger.handlers:
            logger.handlers.clear()

        formatter = (
            JSONFormatter(default_context)
            if json_logs
            else TextFormatter(default_context, colored_console)
        )

        if log_file:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            file_handler = RotatingFileHandler(
                log_file, maxBytes=max_bytes, backupCount=backup_count
            )
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

        if to_console:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        return logger


def get_logger(name: str = "webrequest", request_id: Optional[str] = None) -> RequestLoggerAdapter:
    """
    Adapter over the package logger. Handlers are only installed the first
    time, so host applications that configure logging themselves keep theirs.
    """
    base_logger = logging.getLogger(name)
    if not base_logger.handlers:
        from webrequest.settings import get_settings

        settings = get_settings()
        return Logger(name, level=settings.log_level, json_logs=settings.json_logs, request_id=request_id)
    return RequestLoggerAdapter(base_logger, request_id)
