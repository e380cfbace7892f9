"""
Actual vs. theoretical usage reports.

The daily series is built over the selected range widened to whole weeks so
edge weeks are complete; monthly totals only count days of the selected
range.
"""
import calendar
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence

import numpy as np
from sqlalchemy.orm import Session

from chemdose.models import Tank, CalculationMethod
from chemdose.services.aggregation import aggregate_monthly, aggregate_weekly, extend_to_week_bounds
from chemdose.services.consumption import Metric, reconstruct_daily_usage, select_window_readings
from chemdose.services.contracts import end_of_day, get_active_supply, supplies_effective_between
from chemdose.services.normalization import to_midnight
from chemdose.services.storage import StorageService
from chemdose.services.theoretical import deviation_percent, period_theoretical, weekly_theoretical

logger = logging.getLogger(__name__)


def _round(value: Optional[float], digits: int = 2) -> Optional[float]:
    return round(value, digits) if value is not None else None


def month_bounds(year: int, month: int):
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def summarize(usages: Sequence[float]) -> Dict:
    if not usages:
        return {"total": 0.0, "average_daily": 0.0, "peak_daily": 0.0, "days": 0}
    values = np.array(usages, dtype=float)
    return {
        "total": round(float(values.sum()), 2),
        "average_daily": round(float(values.mean()), 2),
        "peak_daily": round(float(values.max()), 2),
        "days": int(values.size),
    }


def build_usage_report(
    tank: Tank,
    readings: Sequence,
    supplies: Sequence,
    records: Sequence,
    start: date,
    end: date,
    metric: Metric = Metric.WEIGHT,
    today: Optional[date] = None,
) -> Dict:
    today = today or date.today()
    ext_start, ext_end = extend_to_week_bounds(start, end)
    window = select_window_readings(readings, to_midnight(ext_start), end_of_day(ext_end))
    daily = reconstruct_daily_usage(window, metric, supplies, window=(ext_start, ext_end))

    weekly = []
    for bucket in aggregate_weekly(daily.values()):
        theoretical = None
        if bucket['week_start'] <= today:
            theoretical = weekly_theoretical(tank, bucket['week_start'], records, supplies, metric)
        weekly.append({
            "week_start": bucket['week_start'],
            "actual": round(bucket['usage'], 2),
            "theoretical": _round(theoretical),
            "deviation_percent": round(deviation_percent(bucket['usage'], theoretical), 1),
            "average_level": round(bucket['level'], 2),
            "days": bucket['days'],
        })

    monthly = []
    for bucket in aggregate_monthly(daily.values(), start, end):
        first, last = month_bounds(bucket['year'], bucket['month'])
        theoretical = period_theoretical(
            tank, max(first, start), min(last, end), records, supplies, metric, today=today,
        )
        monthly.append({
            "year": bucket['year'],
            "month": bucket['month'],
            "actual": round(bucket['usage'], 2),
            "theoretical": _round(theoretical),
            "deviation_percent": round(deviation_percent(bucket['usage'], theoretical), 1),
            "days": bucket['days'],
        })

    selected = [p for d, p in daily.items() if start <= d <= end]
    return {
        "tank_id": tank.id,
        "tank_name": tank.name,
        "metric": metric.value,
        "start": start,
        "end": end,
        "daily": [
            {"date": p.day, "usage": round(p.usage, 3), "level": round(p.level, 2)}
            for p in daily.values()
        ],
        "weekly": weekly,
        "monthly": monthly,
        "summary": summarize([p.usage for p in selected]),
    }


def month_contract_info(supplies: Sequence, tank_id: int, year: int, month: int) -> Dict:
    """Price and SG in effect at the end of the month plus every contract that started inside it."""
    first, last = month_bounds(year, month)
    active = get_active_supply(supplies, tank_id, last)
    effective = supplies_effective_between(supplies, tank_id, to_midnight(first), end_of_day(last))
    changes = [
        {
            "date": s.start_date.date(),
            "supplier_name": s.supplier_name,
            "price": s.price,
            "specific_gravity": s.specific_gravity,
        }
        for s in effective
        if s.start_date >= to_midnight(first)
    ]
    return {
        "price": active.price if active else None,
        "specific_gravity": active.specific_gravity if active else None,
        "changes": changes,
    }


def build_annual_overview(
    tank: Tank,
    readings: Sequence,
    supplies: Sequence,
    records: Sequence,
    year: int,
    metric: Metric = Metric.WEIGHT,
    today: Optional[date] = None,
) -> Dict:
    today = today or date.today()
    start, end = date(year, 1, 1), date(year, 12, 31)
    window = select_window_readings(readings, to_midnight(start), end_of_day(end))
    daily = reconstruct_daily_usage(window, metric, supplies, window=(start, end))
    actual_by_month = {
        b['month']: b['usage'] for b in aggregate_monthly(daily.values(), start, end)
    }

    months = []
    for month in range(1, 13):
        first, last = month_bounds(year, month)
        actual = actual_by_month.get(month)
        theoretical = None
        if first <= today:
            theoretical = period_theoretical(tank, first, last, records, supplies, metric, today=today)
        months.append({
            "month": month,
            "actual": _round(actual),
            "theoretical": _round(theoretical),
            "deviation_percent": round(deviation_percent(actual or 0.0, theoretical), 1),
            **month_contract_info(supplies, tank.id, year, month),
        })

    return {
        "tank_id": tank.id,
        "tank_name": tank.name,
        "year": year,
        "metric": metric.value,
        "months": months,
    }


class AnalysisService:
    """Fetches what a report needs for a tank and hands it to the pure builders."""

    def __init__(self, db: Session):
        self.storage = StorageService(db)

    def parameter_records(self, tank: Tank) -> List:
        if tank.calculation_method == CalculationMethod.CWS_BLOWDOWN:
            return self.storage.get_cws_params_history(tank.id)
        if tank.calculation_method == CalculationMethod.BWS_STEAM:
            return self.storage.get_bws_params_history(tank.id)
        return []

    def usage_report(self, tank: Tank, start: date, end: date, metric: Metric = Metric.WEIGHT) -> Dict:
        logger.debug(f"Usage report for {tank.name} {start}..{end} ({metric.value})")
        return build_usage_report(
            tank,
            self.storage.get_readings(tank_id=tank.id),
            self.storage.get_supplies(tank.id),
            self.parameter_records(tank),
            start,
            end,
            metric,
        )

    def annual_overview(self, year: int, metric: Metric = Metric.WEIGHT, tank_id: Optional[int] = None) -> List[Dict]:
        tanks = self.storage.get_tanks()
        if tank_id is not None:
            tanks = [t for t in tanks if t.id == tank_id]
        supplies = self.storage.get_supplies()
        return [
            build_annual_overview(
                tank,
                self.storage.get_readings(tank_id=tank.id),
                supplies,
                self.parameter_records(tank),
                year,
                metric,
            )
            for tank in tanks
        ]
