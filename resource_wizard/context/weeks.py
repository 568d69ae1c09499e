"""Work-week arithmetic. Weeks start on Monday."""

from datetime import date, timedelta
from typing import List


def week_start_of(day: date) -> date:
    """Monday of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def is_week_start(day: date) -> bool:
    return day.weekday() == 0


def week_starts(first: date, count: int) -> List[date]:
    """``count`` consecutive Mondays beginning with the week of ``first``."""
    start = week_start_of(first)
    return [start + timedelta(weeks=i) for i in range(count)]


def weeks_between(start_week: date, end_week: date) -> List[date]:
    """Mondays from start_week through end_week, both inclusive."""
    weeks = []
    current = week_start_of(start_week)
    while current <= end_week:
        weeks.append(current)
        current += timedelta(weeks=1)
    return weeks
