# utils/time_utils.py

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite hands back for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
