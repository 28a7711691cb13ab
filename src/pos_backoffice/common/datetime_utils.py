from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional, Union

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    """Parse a date or full ISO timestamp (a trailing 'Z' is accepted).

    Aware timestamps are converted to naive local wall time so they compare
    with MySQL DATETIME values.
    """
    v = (value or "").strip()
    if not v:
        raise ValidationError("Invalid date")
    if len(v) == 10:
        try:
            return datetime.combine(parse_iso_date(v), time.min)
        except ValueError:
            raise ValidationError(f"Invalid date: {value}")
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def optional_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_iso_date(value[:10])
    except ValueError:
        raise ValidationError(f"Invalid date: {value}")


def start_of_day(value: Union[date, datetime]) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min)


def end_of_day(value: Union[date, datetime]) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.max)


def now_local() -> datetime:
    """Naive local now; services take it as their default clock."""
    return datetime.now()
