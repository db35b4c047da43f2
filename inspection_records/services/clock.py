from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Optional

_last_id = 0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return to_iso(utc_now())


def month_key(dt: Optional[datetime] = None) -> str:
    """``YYYY-MM`` of the local wall-clock month."""
    dt = dt or datetime.now().astimezone()
    return f"{dt.year}-{dt.month:02d}"


def new_record_id() -> str:
    """Millisecond timestamp, bumped when two ids are issued in the same millisecond."""
    global _last_id
    candidate = int(time.time() * 1000)
    if candidate <= _last_id:
        candidate = _last_id + 1
    _last_id = candidate
    return str(candidate)
