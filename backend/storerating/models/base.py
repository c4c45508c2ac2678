from datetime import datetime, timezone

from sqlalchemy.orm import declarative_base


Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns (no tz)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
