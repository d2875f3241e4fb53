from typing import Any, Dict, Optional
import uuid

import structlog

_CONTEXT_KEYS = ("user_id", "season_id", "action", "session_id")


def bind_context(
    *,
    user_id: Optional[str] = None,
    season_id: Optional[str] = None,
    action: Optional[str] = None,
    session_id: Optional[str] = None,
) -> None:
    """Attach session identifiers to every log line emitted from this context."""
    values: Dict[str, Any] = {}
    if user_id is not None:
        values["user_id"] = user_id
    if season_id is not None:
        values["season_id"] = season_id
    if action is not None:
        values["action"] = action
    if session_id is not None:
        values["session_id"] = session_id
    elif "session_id" not in structlog.contextvars.get_contextvars():
        values["session_id"] = str(uuid.uuid4())[:8]
    structlog.contextvars.bind_contextvars(**values)


def clear_context() -> None:
    structlog.contextvars.unbind_contextvars(*_CONTEXT_KEYS)


def get_current_context() -> Dict[str, Any]:
    current = structlog.contextvars.get_contextvars()
    return {key: current[key] for key in _CONTEXT_KEYS if key in current}
