"""Time helpers.

Timestamps are stored as naive UTC datetimes, which is what SQLite hands back.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)
