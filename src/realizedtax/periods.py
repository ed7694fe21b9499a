"""
Period bounds: turning dates, datetimes and query strings into an
inclusive, timezone-aware [start, end] pair.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Optional, Tuple, Union

from .errors import InvalidPeriodError
from .schemas import as_utc

DateLike = Union[date, datetime]


def start_bound(value: DateLike) -> datetime:
    """A bare date starts at 00:00:00 UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    raise InvalidPeriodError(f"period start must be a date or datetime, got {type(value).__name__}")


def end_bound(value: DateLike) -> datetime:
    """A bare date ends at 23:59:59.999999 UTC, so the whole day is included."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.max, tzinfo=timezone.utc)
    raise InvalidPeriodError(f"period end must be a date or datetime, got {type(value).__name__}")


def resolve_bounds(period_start: DateLike, period_end: DateLike) -> Tuple[datetime, datetime]:
    start, end = start_bound(period_start), end_bound(period_end)
    if start > end:
        raise InvalidPeriodError("Start date must be before end date")
    return start, end


def year_bounds(year: int) -> Tuple[datetime, datetime]:
    """Jan 1 00:00:00 through Dec 31 23:59:59 of `year`, UTC."""
    if not 1 <= year <= 9999:
        raise InvalidPeriodError(f"year out of range: {year}")
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
    )


def _parse(value: str, is_end: bool) -> datetime:
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"  # fromisoformat() before 3.11 rejects 'Z'
    try:
        if len(s) == 10:
            d = date.fromisoformat(s)
            return end_bound(d) if is_end else start_bound(d)
        return as_utc(datetime.fromisoformat(s))
    except ValueError as e:
        raise InvalidPeriodError("Invalid date format") from e


def period_from_params(
    year: Union[int, str, None],
    start_date: Optional[str],
    end_date: Optional[str],
    today: Optional[date] = None,
) -> Tuple[datetime, datetime]:
    """
    Resolve report query parameters:
    - startDate AND endDate -> custom range (date-only values cover whole days)
    - otherwise year (default: the current UTC year) -> Jan 1 .. Dec 31;
      `year` may arrive as the raw query string
    """
    if start_date and end_date:
        start, end = _parse(start_date, False), _parse(end_date, True)
    elif year is None or (isinstance(year, str) and not year.strip()):
        start, end = year_bounds((today or datetime.now(timezone.utc).date()).year)
    else:
        try:
            year_num = int(year)
        except ValueError as e:
            raise InvalidPeriodError("Invalid date format") from e
        start, end = year_bounds(year_num)

    if start > end:
        raise InvalidPeriodError("Start date must be before end date")
    return start, end
