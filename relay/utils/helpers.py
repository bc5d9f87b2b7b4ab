from datetime import datetime, timezone
from typing import Any, Dict, List, Union


def get_nested_value(data: Any, keys: list) -> Any:
    """Walk a list of dict keys (or list indexes). Returns None as soon as one is missing."""
    current = data
    for key in keys:
        if isinstance(current, dict) and key in current:
            current = current[key]
        elif isinstance(current, list) and isinstance(key, int) and -len(current) <= key < len(current):
            current = current[key]
        else:
            return None
    return current


def as_list(value: Union[None, str, List[str]]) -> List[str]:
    """Normalize a single value or a list of values (query params, 'to' field) into a list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [v for v in value if v]
    return [value] if value else []


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def is_message_event(event: Dict[str, Any]) -> bool:
    """True when a webhook envelope's type denotes a message event (message.received, ...)."""
    event_type = event.get("type") if isinstance(event, dict) else None
    return isinstance(event_type, str) and "message" in event_type
