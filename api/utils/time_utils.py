"""Time utilities."""
from datetime import datetime, timezone


def format_timestamp(value: datetime) -> str:
    """Format datetime as ISO string, assuming UTC for naive values."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_iso_timestamp(value: object) -> datetime | None:
    """Parse ISO timestamp string to an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        if not isinstance(value, str):
            return None
        raw = value.strip()
        if not raw:
            return None
        if raw.endswith("Z"):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
