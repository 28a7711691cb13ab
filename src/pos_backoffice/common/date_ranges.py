"""Calendar presets used by the HR, inventory, sales and salary filters.

All ranges are inclusive: ``end`` is the last microsecond of the final day.
"""

from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..core.exceptions import ValidationError
from .datetime_utils import end_of_day, optional_date, parse_iso_datetime, start_of_day

MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

PRESETS = (
    "all",
    "today",
    "yesterday",
    "thisMonth",
    "lastMonth",
    "thisYear",
    "thisQuarter",
    "lastQuarter",
    "q1",
    "q2",
    "q3",
    "q4",
    "custom",
) + MONTH_NAMES

_MONTH_RE = re.compile(r"^(\d{4})-(\d{1,2})$")

YearMonth = Tuple[int, int]


@dataclass(frozen=True)
class DateRange:
    """Inclusive datetime window; a missing bound is open."""

    start: Optional[datetime]
    end: Optional[datetime]

    def contains(self, value: Union[date, datetime, None]) -> bool:
        if value is None:
            return False
        if not isinstance(value, datetime):
            value = start_of_day(value)
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


def month_range(year: int, month: int) -> DateRange:
    last_day = calendar.monthrange(year, month)[1]
    return DateRange(
        start=start_of_day(date(year, month, 1)),
        end=end_of_day(date(year, month, last_day)),
    )


def quarter_range(year: int, quarter: int) -> DateRange:
    if quarter not in (1, 2, 3, 4):
        raise ValidationError("Quarter must be between 1 and 4")
    first_month = (quarter - 1) * 3 + 1
    return DateRange(
        start=month_range(year, first_month).start,
        end=month_range(year, first_month + 2).end,
    )


def day_range(day: date) -> DateRange:
    return DateRange(start=start_of_day(day), end=end_of_day(day))


def _previous_month(today: date) -> YearMonth:
    if today.month == 1:
        return today.year - 1, 12
    return today.year, today.month - 1


def resolve_preset(preset: Optional[str], *, today: date, custom_date: Optional[date] = None) -> Optional[DateRange]:
    """Resolve a named date filter to a range; ``None`` means no filtering."""
    key = (preset or "all").strip()
    if key == "all":
        return None
    if key == "today":
        return day_range(today)
    if key == "yesterday":
        return day_range(today - timedelta(days=1))
    if key == "thisMonth":
        return month_range(today.year, today.month)
    if key == "lastMonth":
        return month_range(*_previous_month(today))
    if key == "thisYear":
        return DateRange(start=start_of_day(date(today.year, 1, 1)), end=end_of_day(today))
    if key == "thisQuarter":
        return quarter_range(today.year, (today.month - 1) // 3 + 1)
    if key == "lastQuarter":
        q = (today.month - 1) // 3
        if q == 0:
            return quarter_range(today.year - 1, 4)
        return quarter_range(today.year, q)
    if key in ("q1", "q2", "q3", "q4"):
        return quarter_range(today.year, int(key[1]))
    if key == "custom":
        return day_range(custom_date) if custom_date else None
    lowered = key.lower()
    if lowered in MONTH_NAMES:
        return month_range(today.year, MONTH_NAMES.index(lowered) + 1)
    raise ValidationError(f"Unknown date filter: {preset}")


def parse_months(value: Union[str, Iterable[str], None]) -> List[YearMonth]:
    """Parse ``"2025-01,2025-03"`` (or a list) into sorted unique (year, month)."""
    if not value:
        return []
    parts: Iterable[str] = value.split(",") if isinstance(value, str) else value
    months = set()
    for part in parts:
        m = _MONTH_RE.match(str(part).strip())
        if not m:
            continue
        year, month = int(m.group(1)), int(m.group(2))
        if 1 <= month <= 12:
            months.add((year, month))
    return sorted(months)


def months_span(months: Sequence[YearMonth]) -> Optional[DateRange]:
    """From the first day of the earliest month to the end of the latest."""
    if not months:
        return None
    ordered = sorted(months)
    return DateRange(start=month_range(*ordered[0]).start, end=month_range(*ordered[-1]).end)


def in_months(value: Union[date, datetime, None], months: Sequence[YearMonth]) -> bool:
    if not months:
        return True
    if value is None:
        return False
    return (value.year, value.month) in set(months)


def resolve_request_range(
    *,
    today: date,
    preset: Optional[str] = None,
    custom_date: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    months: Union[str, Sequence[str], None] = None,
) -> Optional[DateRange]:
    """Effective range for list endpoints.

    Explicit ``date_from``/``date_to`` win, then a month list, then a preset.
    A bare ``date_to`` date extends to the end of that day.
    """
    if date_from or date_to:
        start = parse_iso_datetime(date_from) if date_from else None
        end = None
        if date_to:
            end = parse_iso_datetime(date_to)
            if len(date_to.strip()) == 10:
                end = end_of_day(end)
        return DateRange(start=start, end=end)

    parsed_months = parse_months(months)
    if parsed_months:
        return months_span(parsed_months)

    if preset:
        return resolve_preset(preset, today=today, custom_date=optional_date(custom_date))
    return None
