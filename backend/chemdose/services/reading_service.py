import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from chemdose.models import Tank, Reading, FluctuationAlert, InputUnit
from chemdose.services.anomaly_detection import AnomalyOptions, AnomalyReport, detect_anomalies
from chemdose.services.contracts import get_active_supply
from chemdose.services.storage import StorageService
from chemdose.services.volume import DEFAULT_SPECIFIC_GRAVITY, calculate_volume, calculate_weight, tank_capacity

logger = logging.getLogger(__name__)


def build_reading(
    tank: Tank,
    timestamp: datetime,
    level_cm: float,
    supplies: Sequence,
    added_amount_liters: float = 0.0,
    operator_name: Optional[str] = None,
    specific_gravity: Optional[float] = None,
    reading_id: Optional[int] = None,
) -> Reading:
    """
    A reading with its volume/weight snapshot computed from the tank geometry
    and the SG in effect at the timestamp (an explicit SG wins).
    """
    supply = get_active_supply(supplies, tank.id, timestamp)
    if specific_gravity and specific_gravity > 0:
        sg = specific_gravity
    elif supply is not None:
        sg = supply.specific_gravity
    else:
        sg = DEFAULT_SPECIFIC_GRAVITY

    volume = calculate_volume(tank, level_cm)
    return Reading(
        id=reading_id,
        tank_id=tank.id,
        timestamp=timestamp,
        level_cm=level_cm,
        calculated_volume=volume,
        calculated_weight_kg=calculate_weight(volume, sg),
        applied_specific_gravity=sg,
        supply_id=supply.id if supply is not None else None,
        added_amount_liters=added_amount_liters or 0.0,
        operator_name=operator_name,
    )


def alerts_from_report(report: AnomalyReport, source: str) -> List[FluctuationAlert]:
    return [
        FluctuationAlert(
            tank_id=a.tank_id,
            tank_name=a.tank_name,
            date_str=a.date,
            reason=a.reason,
            current_value=a.current_value,
            prev_value=a.prev_value,
            next_value=a.next_value,
            is_possible_refill=a.is_possible_refill,
            source=source,
        )
        for a in report.anomalies
    ]


class ReadingService:
    def __init__(self, storage: StorageService, options: Optional[AnomalyOptions] = None):
        self.storage = storage
        self.options = options or AnomalyOptions()

    def same_day_reading(self, tank_id: int, timestamp: datetime, existing: Sequence[Reading]) -> Optional[Reading]:
        day = timestamp.date()
        for reading in existing:
            if reading.tank_id == tank_id and reading.timestamp.date() == day:
                return reading
        return None

    def check(self, tank: Tank, candidates: Sequence[Reading]) -> AnomalyReport:
        existing = self.storage.get_readings(tank_id=tank.id)
        return detect_anomalies(tank, candidates, existing, self.options)

    def commit(self, candidates: Sequence[Reading], report: AnomalyReport, source: str) -> Dict:
        """Persist confirmed readings together with the anomalies as audit alerts."""
        saved = self.storage.save_readings_batch(candidates)
        alerts = self.storage.save_alerts_batch(alerts_from_report(report, source))
        self.storage.commit()
        logger.info(f"Saved {len(saved)} readings and {len(alerts)} alerts ({source})")
        return {"saved": len(saved), "alerts": len(alerts)}

    def recalculate_specific_gravity(self, tank_id: Optional[int] = None, since: Optional[datetime] = None) -> int:
        """
        Re-snapshot SG, volume and weight of readings against the contract
        timeline and the current tank geometry. Returns the number of
        readings changed. Readings no contract covers go back to the default
        SG with no contract attached.
        """
        tanks = {t.id: t for t in self.storage.get_tanks()}
        supplies = self.storage.get_supplies(tank_id)
        updated = 0

        for reading in self.storage.get_readings(tank_id=tank_id, start=since):
            tank = tanks.get(reading.tank_id)
            if tank is None:
                continue
            supply = get_active_supply(supplies, reading.tank_id, reading.timestamp)
            sg = supply.specific_gravity if supply is not None else DEFAULT_SPECIFIC_GRAVITY
            supply_id = supply.id if supply is not None else None
            volume = calculate_volume(tank, reading.level_cm)
            if (
                sg == reading.applied_specific_gravity
                and supply_id == reading.supply_id
                and volume == reading.calculated_volume
            ):
                continue
            reading.applied_specific_gravity = sg
            reading.calculated_volume = volume
            reading.calculated_weight_kg = calculate_weight(volume, sg)
            reading.supply_id = supply_id
            updated += 1

        self.storage.db.flush()
        if updated:
            logger.info(f"Specific gravity recalculated for {updated} readings (tank={tank_id or 'all'})")
        return updated


def tank_status(tank: Tank, readings: Sequence[Reading], default_capacity: float = 10000.0) -> Dict:
    """Latest level and whether it is under the tank's safe minimum."""
    latest = max(readings, key=lambda r: r.timestamp) if readings else None
    capacity = tank_capacity(tank, default=default_capacity)
    if latest is None:
        return {
            "tank_id": tank.id,
            "tank_name": tank.name,
            "capacity_liters": capacity,
            "level_cm": None,
            "volume_liters": None,
            "weight_kg": None,
            "percent_full": None,
            "is_low": False,
            "last_reading": None,
        }

    # safe_min_level is in the operator's input unit
    level_in_unit = latest.level_cm / 100 if tank.input_unit == InputUnit.PERCENT else latest.level_cm
    is_low = tank.safe_min_level is not None and level_in_unit < tank.safe_min_level
    return {
        "tank_id": tank.id,
        "tank_name": tank.name,
        "capacity_liters": capacity,
        "level_cm": latest.level_cm,
        "volume_liters": round(latest.calculated_volume, 1),
        "weight_kg": round(latest.calculated_weight_kg, 1),
        "percent_full": round(latest.calculated_volume / capacity * 100, 1) if capacity > 0 else None,
        "is_low": is_low,
        "last_reading": latest.timestamp.isoformat(),
    }
