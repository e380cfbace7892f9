"""
Detection of implausible level jumps in new readings.

Detection is pure: it compares candidate readings against the existing
timeline and returns a report. Whether to commit anyway is the caller's
decision.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Sequence

from chemdose.config import Settings
from chemdose.services.consumption import SECONDS_PER_DAY
from chemdose.services.volume import tank_capacity

logger = logging.getLogger(__name__)

DEFAULT_ANOMALY_MESSAGE = "日均變化量 {diff} {unit} 超過警戒值 {limit} {unit}，請確認數據是否正確"
DEFAULT_REFILL_MESSAGE = "液位上升 {diff} {unit}/日 (警戒值 {limit} {unit})，疑似補藥未登錄"


@dataclass
class AnomalyOptions:
    default_threshold_percent: float = 30.0
    default_capacity_liters: float = 10000.0
    refill_multiplier: float = 12.0
    anomaly_template: Optional[str] = None
    refill_template: Optional[str] = None
    unit: str = "L"

    @classmethod
    def from_settings(cls, settings: Settings) -> "AnomalyOptions":
        return cls(
            default_threshold_percent=settings.default_validation_threshold,
            default_capacity_liters=settings.default_tank_capacity_liters,
            refill_multiplier=settings.refill_threshold_multiplier,
            anomaly_template=settings.anomaly_message_template,
            refill_template=settings.refill_message_template,
        )


@dataclass
class Anomaly:
    reading_id: Optional[int]
    tank_id: int
    tank_name: str
    date: str
    reason: str
    current_value: float
    daily_change: float
    daily_threshold: float
    is_possible_refill: bool
    prev_date: Optional[str] = None
    prev_value: Optional[float] = None
    next_date: Optional[str] = None
    next_value: Optional[float] = None


@dataclass
class AnomalyReport:
    anomalies: List[Anomaly] = field(default_factory=list)

    @property
    def has_anomalies(self) -> bool:
        return bool(self.anomalies)

    @property
    def refill_count(self) -> int:
        return sum(1 for a in self.anomalies if a.is_possible_refill)


def format_anomaly_message(template: str, diff=None, limit=None, unit=None, text=None) -> str:
    """Substitute {diff}, {limit}, {unit} and {text} (case-insensitive) in a template."""
    result = template
    for name, value in (('diff', diff), ('limit', limit), ('unit', unit), ('text', text)):
        if value is not None:
            result = re.sub(r'\{' + name + r'\}', lambda _m, v=str(value): v, result, flags=re.IGNORECASE)
    return result


def daily_threshold(tank, options: AnomalyOptions) -> float:
    capacity = tank_capacity(tank, default=options.default_capacity_liters)
    percent = tank.validation_threshold
    if percent is None:
        percent = options.default_threshold_percent
    return capacity * percent / 100


def classify_change(level_change: float, daily_change: float, threshold: float, refill_multiplier: float = 12.0):
    """
    Returns None when the change is within threshold, otherwise True for a
    possible refill (level rose past threshold * multiplier) or False for
    abnormal consumption.
    """
    if daily_change <= threshold:
        return None
    return level_change < 0 and daily_change > threshold * refill_multiplier


def merge_timeline(existing: Sequence, candidates: Sequence) -> List:
    """
    Existing readings plus candidates, one per calendar day, with a candidate
    replacing an existing reading of the same day. Sorted by time.
    """
    by_day: Dict[date, object] = {}
    for reading in existing:
        by_day[reading.timestamp.date()] = reading
    for reading in candidates:
        by_day[reading.timestamp.date()] = reading
    return sorted(by_day.values(), key=lambda r: r.timestamp)


def _build_message(is_refill: bool, change: float, limit: float, options: AnomalyOptions) -> str:
    default = DEFAULT_REFILL_MESSAGE if is_refill else DEFAULT_ANOMALY_MESSAGE
    template = options.refill_template if is_refill else options.anomaly_template
    values = {'diff': f"{change:.1f}", 'limit': f"{limit:.1f}", 'unit': options.unit}
    text = format_anomaly_message(default, **values)
    if not template:
        return text
    # {text} lets a custom template wrap the default wording
    return format_anomaly_message(template, text=text, **values)


def detect_anomalies(
    tank,
    candidates: Sequence,
    existing: Sequence,
    options: Optional[AnomalyOptions] = None,
) -> AnomalyReport:
    """
    Flag candidate readings whose daily average volume change against the
    preceding reading exceeds the tank's daily threshold.
    """
    options = options or AnomalyOptions()
    threshold = daily_threshold(tank, options)
    timeline = merge_timeline(
        [r for r in existing if r.tank_id == tank.id],
        [r for r in candidates if r.tank_id == tank.id],
    )
    candidate_ids = {id(r) for r in candidates}
    report = AnomalyReport()

    for idx, curr in enumerate(timeline):
        if idx == 0 or id(curr) not in candidate_ids:
            continue
        prev = timeline[idx - 1]
        days_diff = (curr.timestamp - prev.timestamp).total_seconds() / SECONDS_PER_DAY
        if days_diff <= 0:
            continue

        level_change = (prev.calculated_volume + (curr.added_amount_liters or 0.0)) - curr.calculated_volume
        daily_change = abs(level_change) / days_diff
        is_refill = classify_change(level_change, daily_change, threshold, options.refill_multiplier)
        if is_refill is None:
            continue

        nxt = timeline[idx + 1] if idx + 1 < len(timeline) else None
        report.anomalies.append(Anomaly(
            reading_id=curr.id,
            tank_id=tank.id,
            tank_name=tank.name,
            date=curr.timestamp.date().isoformat(),
            reason=_build_message(is_refill, daily_change, threshold, options),
            current_value=curr.calculated_volume,
            daily_change=daily_change,
            daily_threshold=threshold,
            is_possible_refill=is_refill,
            prev_date=prev.timestamp.date().isoformat(),
            prev_value=prev.calculated_volume,
            next_date=nxt.timestamp.date().isoformat() if nxt else None,
            next_value=nxt.calculated_volume if nxt else None,
        ))

    if report.has_anomalies:
        logger.info(f"Tank {tank.name}: {len(report.anomalies)} anomalies (threshold {threshold:.1f} L/day)")
    return report
