"""
Theoretical chemical consumption from production parameters.

CWS_BLOWDOWN: chemical follows the cooling-tower blow-down, derived from
evaporation and concentration cycles. BWS_STEAM: chemical follows boiler
steam production. Both are driven by the target ppm of the dosing program.
"""
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from chemdose.models import CalculationMethod
from chemdose.services.aggregation import days_between
from chemdose.services.consumption import Metric
from chemdose.services.contracts import PpmContext, get_active_supply, resolve_target_ppm, unit_price_on
from chemdose.services.normalization import to_midnight

EVAPORATION_COEFFICIENT = 1.8
HOURS_PER_DAY = 24
DAYS_PER_WEEK = 7


def evaporation_m3(circulation_rate: float, temp_diff: float, days: float) -> float:
    return circulation_rate * temp_diff * EVAPORATION_COEFFICIENT * HOURS_PER_DAY * days / 1000


def concentration_cycles(record) -> float:
    """Hardness ratio when both hardness values exist, else the manual cycles if > 1, else 1."""
    if record.cws_hardness and record.makeup_hardness and record.makeup_hardness > 0:
        return record.cws_hardness / record.makeup_hardness
    if record.concentration_cycles and record.concentration_cycles > 1:
        return record.concentration_cycles
    return 1.0


def blowdown_m3(evaporation: float, cycles: float) -> float:
    # No blow-down is calculable at or below one cycle
    if cycles <= 1:
        return 0.0
    return evaporation / (cycles - 1)


def cws_usage_kg(circulation_rate: float, temp_diff: float, cycles: float, target_ppm: float, days: float) -> float:
    evaporation = evaporation_m3(circulation_rate or 0.0, temp_diff or 0.0, days)
    return blowdown_m3(evaporation, cycles) * (target_ppm or 0.0) / 1000


def bws_usage_kg(weekly_steam_tons: float, target_ppm: float, days: float) -> float:
    daily_steam = (weekly_steam_tons or 0.0) / DAYS_PER_WEEK
    return daily_steam * days * (target_ppm or 0.0) / 1000


def record_temp_diff(record) -> float:
    if record.temp_diff:
        return record.temp_diff
    if record.temp_outlet is not None and record.temp_return is not None:
        return abs(record.temp_return - record.temp_outlet)
    return 0.0


def covering_record(records: Iterable, day):
    """The weekly record with week_start <= day < week_start + 7 days."""
    moment = to_midnight(day)
    for record in records:
        if record.week_start is None:
            continue
        if record.week_start <= moment < record.week_start + timedelta(days=DAYS_PER_WEEK):
            return record
    return None


def in_metric(value_kg: float, metric: Metric, supplies: Sequence, tank_id: int, day) -> float:
    """Convert theoretical kg to the display metric with the contract active on day."""
    if metric == Metric.COST:
        return value_kg * unit_price_on(supplies, tank_id, day)
    if metric == Metric.VOLUME:
        supply = get_active_supply(supplies, tank_id, day)
        sg = supply.specific_gravity if supply is not None and supply.specific_gravity else 1.0
        return value_kg / sg
    return value_kg


def _record_usage_kg(method: CalculationMethod, record, target_ppm: float, days: float) -> float:
    if method == CalculationMethod.CWS_BLOWDOWN:
        return cws_usage_kg(
            record.circulation_rate,
            record_temp_diff(record),
            concentration_cycles(record),
            target_ppm,
            days,
        )
    if method == CalculationMethod.BWS_STEAM:
        return bws_usage_kg(record.steam_production, target_ppm, days)
    return 0.0


def daily_theoretical(
    tank,
    day: date,
    records: Sequence,
    supplies: Sequence,
    metric: Metric = Metric.WEIGHT,
) -> Optional[float]:
    """
    Theoretical usage for a single day, or None when no weekly record covers
    the day or no target ppm can be resolved.
    """
    method = tank.calculation_method or CalculationMethod.NONE
    if method == CalculationMethod.NONE:
        return None
    record = covering_record(records, day)
    if record is None:
        return None
    ppm = resolve_target_ppm(PpmContext(tank.id, to_midnight(day), supplies, record))
    if not ppm:
        return None

    return in_metric(_record_usage_kg(method, record, ppm, 1), metric, supplies, tank.id, day)


def period_theoretical(
    tank,
    start: date,
    end: date,
    records: Sequence,
    supplies: Sequence,
    metric: Metric = Metric.WEIGHT,
    today: Optional[date] = None,
) -> Optional[float]:
    """
    Day-by-day sum of theoretical usage over [start, end].

    Every day uses its own covering weekly record and its own contract, so
    months of any length and weeks crossing month boundaries add up exactly.
    Future days and days without a record contribute nothing. Returns None
    when no day in the period had a usable record.
    """
    today = today or date.today()
    total = 0.0
    found = False
    for day in days_between(start, end):
        if day > today:
            continue
        value = daily_theoretical(tank, day, records, supplies, metric)
        if value is None:
            continue
        found = True
        total += value
    return total if found else None


def weekly_theoretical(
    tank,
    week_start: date,
    records: Sequence,
    supplies: Sequence,
    metric: Metric = Metric.WEIGHT,
) -> Optional[float]:
    """
    Theoretical usage for a whole Monday-start week from the record covering
    it, with the ppm and price of the contract active at the week's end.
    """
    method = tank.calculation_method or CalculationMethod.NONE
    if method == CalculationMethod.NONE:
        return None
    record = covering_record(records, week_start)
    if record is None:
        return None
    week_end = week_start + timedelta(days=DAYS_PER_WEEK - 1)
    ppm = resolve_target_ppm(PpmContext(tank.id, to_midnight(week_end), supplies, record))
    if not ppm:
        return None

    return in_metric(_record_usage_kg(method, record, ppm, DAYS_PER_WEEK), metric, supplies, tank.id, week_end)


def deviation_percent(actual: float, theoretical: Optional[float]) -> float:
    if not theoretical:
        return 0.0
    return (actual - theoretical) / theoretical * 100
