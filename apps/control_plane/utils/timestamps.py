"""UTC normalization for timestamps read back from the store."""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive values (SQLite drops tzinfo; everything is stored in UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]
