from __future__ import annotations

from datetime import datetime

from cityflow.schemas.base import as_utc


def iso_datetime(value: datetime | None) -> str | None:
    """Render a stored timestamp as ISO 8601 in UTC.

    SQLite hands back naive datetimes even for timezone-aware columns; every
    value is written in UTC, so a missing offset is read as UTC.
    """
    if value is None:
        return None
    return as_utc(value).isoformat()
