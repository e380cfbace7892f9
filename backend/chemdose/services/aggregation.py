from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

from chemdose.services.consumption import DailyPoint


def week_start(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def month_key(day: date) -> Tuple[int, int]:
    return (day.year, day.month)


def extend_to_week_bounds(start: date, end: date) -> Tuple[date, date]:
    """Widen [start, end] to the enclosing Monday..Sunday weeks."""
    return week_start(start), week_start(end) + timedelta(days=6)


def days_between(start: date, end: date) -> Iterable[date]:
    """Inclusive day range."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def aggregate_weekly(points: Iterable[DailyPoint]) -> List[Dict]:
    """Sum usage and average level per Monday-aligned week."""
    grouped: Dict[date, Dict] = {}
    for point in points:
        key = week_start(point.day)
        bucket = grouped.setdefault(key, {'week_start': key, 'usage': 0.0, 'level_sum': 0.0, 'days': 0})
        bucket['usage'] += point.usage
        bucket['level_sum'] += point.level
        bucket['days'] += 1

    return [
        {
            'week_start': b['week_start'],
            'usage': b['usage'],
            'level': b['level_sum'] / (b['days'] or 1),
            'days': b['days'],
        }
        for _, b in sorted(grouped.items())
    ]


def aggregate_monthly(points: Iterable[DailyPoint], start: date, end: date) -> List[Dict]:
    """
    Sum usage per calendar month, counting only days inside [start, end].
    Padding days added for week alignment must not leak into month totals.
    """
    grouped: Dict[Tuple[int, int], Dict] = {}
    for point in points:
        if not start <= point.day <= end:
            continue
        key = month_key(point.day)
        bucket = grouped.setdefault(key, {'year': key[0], 'month': key[1], 'usage': 0.0, 'days': 0})
        bucket['usage'] += point.usage
        bucket['days'] += 1
    return [grouped[k] for k in sorted(grouped)]
