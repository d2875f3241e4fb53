from core.logging.config import configure_logging, get_logger, shutdown_logging
from core.logging.context import bind_context, clear_context, get_current_context

__all__ = [
    "configure_logging",
    "get_logger",
    "shutdown_logging",
    "bind_context",
    "clear_context",
    "get_current_context",
]
