# common/scripts/get_date_range.py
from datetime import date, timedelta
from typing import Optional


def get_week_date_range(target_date: Optional[date] = None) -> tuple[date, date, int]:
    """
    Calculate the start and end dates of the week containing the target date.

    Weeks are defined as Monday through Sunday (ISO week definition).

    Example:
        >>> get_week_date_range(date(2024, 1, 10))  # Wednesday
        (date(2024, 1, 8), date(2024, 1, 14), 2)
    """
    _date = target_date or date.today()
    week_start = _date - timedelta(days=_date.weekday())
    week_end = week_start + timedelta(days=6)
    week_number = _date.isocalendar()[1]
    return week_start, week_end, week_number


def get_month_date_range(target_date: Optional[date] = None) -> tuple[date, date]:
    """First and last day of the calendar month containing target_date."""
    _date = target_date or date.today()
    month_start = _date.replace(day=1)
    next_month = (month_start + timedelta(days=32)).replace(day=1)
    return month_start, next_month - timedelta(days=1)


def get_period_date_range(period: str, target_date: Optional[date] = None) -> tuple[date, date]:
    """
    Inclusive (start, end) for a named period: "today", "week" or "month".

    Raises:
        ValueError: For an unknown period name
    """
    _date = target_date or date.today()
    if period == "today":
        return _date, _date
    if period == "week":
        week_start, week_end, _ = get_week_date_range(_date)
        return week_start, week_end
    if period == "month":
        return get_month_date_range(_date)
    raise ValueError(f"Unknown period: {period}")


__all__ = ["get_week_date_range", "get_month_date_range", "get_period_date_range"]
