from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp for every created/started/completed column."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat a naive value (SQLite without tz support hands these back) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
