from typing import Any, Dict

import structlog

SENSITIVE_KEYS = frozenset({'token', 'password', 'secret', 'api_key', 'authorization', 'auth_token'})


def redact_sensitive_data(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    for key in list(event_dict.keys()):
        if key.lower() in SENSITIVE_KEYS:
            event_dict[key] = '[REDACTED]'
    return event_dict


def add_service_context(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: Dict[str, Any],
) -> Dict[str, Any]:
    event_dict.setdefault("service", "clicker")
    return event_dict
