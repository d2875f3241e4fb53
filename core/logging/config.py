import json
import logging
import queue
import sys
import threading
from logging.handlers import TimedRotatingFileHandler, QueueHandler, QueueListener
from pathlib import Path
from typing import Any, Optional

import structlog

from core.logging.processors import redact_sensitive_data, add_service_context

_configured = False
_config_lock = threading.Lock()
_listeners: list[QueueListener] = []


class DualFormatFormatter(logging.Formatter):
    """JSON lines for files, a compact colored line for the console."""

    def __init__(self, pretty: bool = False):
        super().__init__()
        self.pretty = pretty

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()

        if not self.pretty:
            return msg

        try:
            data = json.loads(msg)
        except (json.JSONDecodeError, TypeError):
            return msg
        if not isinstance(data, dict):
            return msg

        level = str(data.get("level", "INFO")).upper()
        logger_name = data.get("logger", "unknown")
        event = data.get("event", msg)
        timestamp = str(data.get("timestamp", ""))[:19].replace("T", " ")

        level_colors = {
            "DEBUG": "\033[36m",
            "INFO": "\033[32m",
            "WARNING": "\033[33m",
            "ERROR": "\033[31m",
            "CRITICAL": "\033[35m",
        }
        reset = "\033[0m"
        color = level_colors.get(level, "")

        extra_keys = [k for k in data.keys() if k not in ("event", "logger", "level", "timestamp", "service")]
        extra = ""
        if extra_keys:
            extra = " " + " ".join(f"{k}={data[k]}" for k in extra_keys[:6])

        return f"{timestamp} {color}[{level}]{reset} {logger_name}: {event}{extra}"


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    enable_console: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger exactly once.

    Records are rendered to JSON by structlog, pushed through a queue and
    fanned out by a background listener to a daily rotating file (when
    ``log_file`` is set) and to stdout.
    """
    global _configured

    with _config_lock:
        if _configured:
            return

        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                add_service_context,
                redact_sensitive_data,
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        _configured = True

        root_logger = logging.getLogger()
        root_logger.setLevel(level)

        handlers_for_listener: list[logging.Handler] = []

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = TimedRotatingFileHandler(
                filename=log_path,
                when="midnight",
                interval=1,
                backupCount=30,
                encoding="utf-8",
            )
            file_handler.setFormatter(DualFormatFormatter(pretty=False))
            file_handler.setLevel(level)
            handlers_for_listener.append(file_handler)

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(DualFormatFormatter(pretty=True))
            console_handler.setLevel(level)
            handlers_for_listener.append(console_handler)

        if not handlers_for_listener:
            return

        log_queue: queue.Queue[Any] = queue.Queue(-1)
        listener = QueueListener(
            log_queue,
            *handlers_for_listener,
            respect_handler_level=True,
        )
        listener.start()
        _listeners.append(listener)

        root_logger.addHandler(QueueHandler(log_queue))


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    if not _configured:
        from configs.settings import LOG_FILE, LOG_LEVEL
        configure_logging(level=getattr(logging, LOG_LEVEL, logging.INFO), log_file=LOG_FILE or None)
    return structlog.get_logger(name)


def shutdown_logging() -> None:
    for listener in _listeners:
        listener.stop()
    _listeners.clear()
