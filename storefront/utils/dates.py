# storefront/utils/dates.py
from datetime import datetime, timezone

def utcnow() -> datetime:
    """Naive UTC timestamp; the database stores naive UTC throughout."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def to_naive_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt

def parse_iso8601(s: str | None) -> datetime | None:
    if not s:
        return None
    s = s.strip()
    # support trailing 'Z' (UTC)
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return to_naive_utc(datetime.fromisoformat(s))
    except ValueError:
        return None
