"""
Contract timeline lookups.

The active contract for a tank at a moment is the one with the latest
start_date not after that moment. All functions here are pure and work on
already-fetched supply lists.
"""
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Sequence

from chemdose.services.normalization import to_midnight


def _as_datetime(moment) -> datetime:
    if isinstance(moment, datetime):
        return moment
    return to_midnight(moment)


def get_active_supply(supplies: Iterable, tank_id: int, moment):
    """
    Return the contract in effect for tank_id at moment, or None.
    Ties on start_date go to the highest id (most recently saved).
    """
    moment = _as_datetime(moment)
    candidates = [
        s for s in supplies
        if s.tank_id == tank_id and s.start_date is not None and s.start_date <= moment
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda s: (s.start_date, s.id or 0))


def supplies_effective_between(supplies: Iterable, tank_id: int, start: datetime, end: datetime) -> List:
    """Contracts of a tank that are in effect for at least part of [start, end)."""
    timeline = sorted(
        (s for s in supplies if s.tank_id == tank_id),
        key=lambda s: (s.start_date, s.id or 0),
    )
    effective = []
    for idx, supply in enumerate(timeline):
        next_start = timeline[idx + 1].start_date if idx + 1 < len(timeline) else None
        if supply.start_date < end and (next_start is None or next_start > start):
            effective.append(supply)
    return effective


def inherited_target_ppm(supplies: Iterable, tank_id: int, start_date: datetime) -> Optional[float]:
    """Target ppm of the most recent earlier contract for the tank that has one."""
    earlier = [
        s for s in supplies
        if s.tank_id == tank_id and s.start_date < start_date and s.target_ppm
    ]
    if not earlier:
        return None
    return max(earlier, key=lambda s: s.start_date).target_ppm


def check_specific_gravity(tank, specific_gravity: float) -> List[str]:
    """Warnings for an SG outside the tank's qualified range. Empty when fine."""
    warnings = []
    if tank.sg_range_min is not None and specific_gravity < tank.sg_range_min:
        warnings.append(
            f"{tank.name}: SG {specific_gravity} below qualified minimum {tank.sg_range_min}"
        )
    if tank.sg_range_max is not None and specific_gravity > tank.sg_range_max:
        warnings.append(
            f"{tank.name}: SG {specific_gravity} above qualified maximum {tank.sg_range_max}"
        )
    return warnings


# --- Target ppm resolution ---

PpmStrategy = Callable[["PpmContext"], Optional[float]]


class PpmContext:
    """Everything a ppm strategy may consult for one tank and one day."""

    def __init__(self, tank_id: int, day: datetime, supplies: Sequence, param_record=None):
        self.tank_id = tank_id
        self.day = _as_datetime(day)
        self.supplies = supplies
        self.param_record = param_record


def ppm_from_param_record(ctx: PpmContext) -> Optional[float]:
    if ctx.param_record is not None and ctx.param_record.target_ppm:
        return ctx.param_record.target_ppm
    return None


def ppm_from_active_supply(ctx: PpmContext) -> Optional[float]:
    supply = get_active_supply(ctx.supplies, ctx.tank_id, ctx.day)
    if supply is not None and supply.target_ppm:
        return supply.target_ppm
    return None


def ppm_from_prior_supply(ctx: PpmContext) -> Optional[float]:
    return inherited_target_ppm(ctx.supplies, ctx.tank_id, ctx.day + timedelta(days=1))


DEFAULT_PPM_STRATEGIES: List[PpmStrategy] = [
    ppm_from_param_record,
    ppm_from_active_supply,
    ppm_from_prior_supply,
]


def resolve_target_ppm(ctx: PpmContext, strategies: Optional[Sequence[PpmStrategy]] = None) -> Optional[float]:
    """Try each strategy in order and return the first ppm found."""
    for strategy in strategies or DEFAULT_PPM_STRATEGIES:
        value = strategy(ctx)
        if value is not None:
            return value
    return None


def unit_price_on(supplies: Iterable, tank_id: int, day) -> float:
    supply = get_active_supply(supplies, tank_id, day)
    if supply is None or supply.price is None:
        return 0.0
    return supply.price


def end_of_day(day) -> datetime:
    return _as_datetime(day) + timedelta(days=1) - timedelta(microseconds=1)
