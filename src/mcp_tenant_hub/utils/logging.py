"""
Logging infrastructure for the tenant hub.

Rich console output for operators, optional JSON lines for log shippers and
a rotating file handler. Structured context travels through ``extra={...}``.
"""

import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "getMessage", "exc_info",
    "exc_text", "stack_info", "taskName", "message", "asctime",
}

_NOISY_LOGGERS = ["httpx", "httpcore", "h11", "asyncpg", "uvicorn.access"]


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ExtraFormatter(logging.Formatter):
    """Plain text formatter that appends ``extra`` fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if not extras:
            return base
        context = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{base} | {context}"


class HubLogger:
    """Logging manager for the tenant hub."""

    def __init__(self):
        self._loggers: Dict[str, logging.Logger] = {}
        self._setup_done = False

    def setup_logging(
        self,
        level: Union[str, int] = logging.INFO,
        log_file: Optional[Path] = None,
        format_type: str = "text",
        enable_rich: bool = True,
        max_bytes: int = 10 * 1024 * 1024,
        backup_count: int = 5,
        suppress_http: bool = True,
        force: bool = False,
        **kwargs: Any,
    ) -> None:
        """
        Setup logging configuration.

        Args:
            level: Root logging level
            log_file: Path to log file (optional)
            format_type: Format type ('text', 'json')
            enable_rich: Use Rich for console output (ignored for json)
            max_bytes: Maximum log file size before rotation
            backup_count: Number of backup files to keep
            suppress_http: Quiet down HTTP client and driver loggers
            force: Re-apply configuration even if already set up
            **kwargs: Ignored, accepted for forward compatibility
        """
        if self._setup_done and not force:
            return

        if isinstance(level, str):
            level = getattr(logging, level.upper())

        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        if enable_rich and format_type != "json":
            console_handler = RichHandler(
                console=Console(stderr=True),
                rich_tracebacks=True,
                markup=False,
                show_path=False,
            )
            console_handler.setFormatter(ExtraFormatter("%(message)s"))
        else:
            console_handler = logging.StreamHandler(sys.stderr)
            if format_type == "json":
                console_handler.setFormatter(JSONFormatter())
            else:
                console_handler.setFormatter(ExtraFormatter(
                    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
                ))
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )

            if format_type == "json":
                file_handler.setFormatter(JSONFormatter())
            else:
                file_handler.setFormatter(ExtraFormatter(
                    "%(asctime)s | %(levelname)s | %(name)s | "
                    "%(module)s:%(funcName)s:%(lineno)d | %(message)s"
                ))
            file_handler.setLevel(level)
            root_logger.addHandler(file_handler)

        if suppress_http:
            for logger_name in _NOISY_LOGGERS:
                logging.getLogger(logger_name).setLevel(logging.WARNING)

        self._setup_done = True

    def get_logger(self, name: str) -> logging.Logger:
        """
        Get or create a logger instance.

        Args:
            name: Logger name

        Returns:
            Logger instance
        """
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)

        return self._loggers[name]


# Global logger instance
_logger_manager = HubLogger()

# Convenience functions
setup_logging = _logger_manager.setup_logging
get_logger = _logger_manager.get_logger
