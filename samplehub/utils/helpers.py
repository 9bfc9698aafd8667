from datetime import datetime, timezone
from typing import Any

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def from_epoch(ts: Any) -> datetime | None:
    """Stripe sends epoch seconds; None/0 stays None."""
    if not ts:
        return None
    try:
        return datetime.fromtimestamp(int(ts), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None

def safe_int(value: Any, default: int | None = None) -> int | None:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
