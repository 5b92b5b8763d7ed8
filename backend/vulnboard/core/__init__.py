from datetime import datetime, timezone
from typing import Optional


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from MongoDB.

    Analysis ``created_on`` values come back without tzinfo; dashboard windows
    and ISO-week bucketing compare them against aware datetimes.
    """
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)
