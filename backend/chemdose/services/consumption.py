"""
Reconstruction of a continuous daily usage series from sparse readings.

Usage between two consecutive readings is spread evenly over the days
between them. Readings record an added amount (refill) on the reading
taken after it happened.
"""
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

from chemdose.services.contracts import unit_price_on

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400.0


class Metric(str, enum.Enum):
    VOLUME = "L"
    WEIGHT = "KG"
    COST = "COST"


@dataclass
class DailyPoint:
    day: date
    usage: float
    level: float


def level_in_metric(reading, metric: Metric) -> float:
    if metric == Metric.VOLUME:
        return reading.calculated_volume or 0.0
    return reading.calculated_weight_kg or 0.0


def added_in_metric(reading, metric: Metric) -> float:
    liters = reading.added_amount_liters or 0.0
    if metric == Metric.VOLUME:
        return liters
    return liters * (reading.applied_specific_gravity or 0.0)


def interval_daily_usage(prev, nxt, metric: Metric) -> Optional[float]:
    """
    Average daily usage between two readings, floored at zero.
    None when the readings are not in strictly increasing time order.
    """
    diff_days = (nxt.timestamp - prev.timestamp).total_seconds() / SECONDS_PER_DAY
    if diff_days <= 0:
        return None
    total = level_in_metric(prev, metric) + added_in_metric(nxt, metric) - level_in_metric(nxt, metric)
    # Unexplained rises count as zero consumption, not negative
    return max(0.0, total / diff_days)


def select_window_readings(readings: Iterable, start: datetime, end: datetime) -> List:
    """
    Readings inside [start, end] plus the nearest one before and after,
    so the intervals crossing the window edges are still covered.
    """
    ordered = sorted(readings, key=lambda r: r.timestamp)
    before = [r for r in ordered if r.timestamp < start]
    inside = [r for r in ordered if start <= r.timestamp <= end]
    after = [r for r in ordered if r.timestamp > end]
    selected = []
    if before:
        selected.append(before[-1])
    selected.extend(inside)
    if after:
        selected.append(after[0])
    return selected


def reconstruct_daily_usage(
    readings: Sequence,
    metric: Metric = Metric.WEIGHT,
    supplies: Sequence = (),
    window: Optional[tuple] = None,
) -> Dict[date, DailyPoint]:
    """
    Build a day-keyed usage map from chronologically ordered readings.

    Each interval's daily usage is assigned to every calendar day in
    [prev.timestamp, next.timestamp); the first interval to claim a day
    keeps it. For COST the weight usage is priced per day with that day's
    active contract. Days not covered by any interval are absent.
    If window=(first_day, last_day) is given, days outside it are dropped.
    """
    ordered = sorted(readings, key=lambda r: r.timestamp)
    value_metric = Metric.WEIGHT if metric == Metric.COST else metric
    series: Dict[date, DailyPoint] = {}

    for prev, nxt in zip(ordered, ordered[1:]):
        daily = interval_daily_usage(prev, nxt, value_metric)
        if daily is None:
            continue
        level = level_in_metric(prev, value_metric)

        day = prev.timestamp.date()
        end_day = nxt.timestamp
        while datetime(day.year, day.month, day.day) < end_day:
            if day not in series:
                usage = daily
                if metric == Metric.COST:
                    usage = daily * unit_price_on(supplies, prev.tank_id, day)
                series[day] = DailyPoint(day=day, usage=usage, level=level)
            day += timedelta(days=1)

    if window is not None:
        first, last = window
        series = {d: p for d, p in series.items() if first <= d <= last}
    logger.debug(f"Reconstructed {len(series)} days from {len(ordered)} readings ({metric.value})")
    return dict(sorted(series.items()))
