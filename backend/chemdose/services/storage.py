from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from chemdose.models import (
    Tank, Reading, ChemicalSupply, CWSParameterRecord, BWSParameterRecord, FluctuationAlert,
)
from chemdose.services.contracts import get_active_supply


class StorageService:
    """
    Record-level persistence for the dosing entities.
    Last write wins; callers own the transaction boundary via commit().
    """

    def __init__(self, db: Session):
        self.db = db

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()

    # --- Tanks ---

    def get_tanks(self) -> List[Tank]:
        return self.db.query(Tank).order_by(Tank.sort_order, Tank.id).all()

    def get_tank(self, tank_id: int) -> Optional[Tank]:
        return self.db.query(Tank).filter(Tank.id == tank_id).first()

    def find_tank_by_name(self, name: str) -> Optional[Tank]:
        return self.db.query(Tank).filter(Tank.name == str(name).strip()).first()

    # --- Readings ---

    def get_readings(
        self,
        tank_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[Reading]:
        query = self.db.query(Reading)
        if tank_id is not None:
            query = query.filter(Reading.tank_id == tank_id)
        if start is not None:
            query = query.filter(Reading.timestamp >= start)
        if end is not None:
            query = query.filter(Reading.timestamp <= end)
        return query.order_by(Reading.timestamp, Reading.id).all()

    def get_reading(self, reading_id: int) -> Optional[Reading]:
        return self.db.query(Reading).filter(Reading.id == reading_id).first()

    def save_reading(self, reading: Reading) -> Reading:
        self.db.add(reading)
        self.db.flush()
        return reading

    def save_readings_batch(self, readings: Iterable[Reading]) -> List[Reading]:
        """Insert new readings and overwrite those carrying an existing id."""
        saved = []
        for reading in readings:
            if reading.id is not None:
                reading = self.db.merge(reading)
            else:
                self.db.add(reading)
            saved.append(reading)
        self.db.flush()
        return saved

    def update_reading(self, reading: Reading) -> Reading:
        reading = self.db.merge(reading)
        self.db.flush()
        return reading

    def delete_reading(self, reading_id: int) -> bool:
        deleted = self.db.query(Reading).filter(Reading.id == reading_id).delete()
        return deleted > 0

    # --- Supplies ---

    def get_supplies(self, tank_id: Optional[int] = None) -> List[ChemicalSupply]:
        query = self.db.query(ChemicalSupply)
        if tank_id is not None:
            query = query.filter(ChemicalSupply.tank_id == tank_id)
        return query.order_by(ChemicalSupply.start_date, ChemicalSupply.id).all()

    def get_supply(self, supply_id: int) -> Optional[ChemicalSupply]:
        return self.db.query(ChemicalSupply).filter(ChemicalSupply.id == supply_id).first()

    def save_supply(self, supply: ChemicalSupply) -> ChemicalSupply:
        """A second contract for the same (tank, start_date) updates the first."""
        existing = self.db.query(ChemicalSupply).filter(
            ChemicalSupply.tank_id == supply.tank_id,
            ChemicalSupply.start_date == supply.start_date,
        ).first()
        if existing is None:
            self.db.add(supply)
            self.db.flush()
            return supply

        for field in ('supplier_name', 'chemical_name', 'specific_gravity', 'price', 'target_ppm', 'notes'):
            setattr(existing, field, getattr(supply, field))
        self.db.flush()
        return existing

    def update_supply(self, supply: ChemicalSupply) -> ChemicalSupply:
        supply = self.db.merge(supply)
        self.db.flush()
        return supply

    def add_supplies_batch(self, supplies: Iterable[ChemicalSupply]) -> List[ChemicalSupply]:
        return [self.save_supply(s) for s in supplies]

    def delete_supply(self, supply_id: int) -> bool:
        return self.db.query(ChemicalSupply).filter(ChemicalSupply.id == supply_id).delete() > 0

    def get_active_supply(self, tank_id: int, timestamp: datetime) -> Optional[ChemicalSupply]:
        return get_active_supply(self.get_supplies(tank_id), tank_id, timestamp)

    # --- Weekly production parameters ---

    def _save_weekly(self, model, record):
        existing = self.db.query(model).filter(
            model.tank_id == record.tank_id,
            model.week_start == record.week_start,
        ).first()
        if existing is None:
            self.db.add(record)
            self.db.flush()
            return record
        record.id = existing.id
        record = self.db.merge(record)
        self.db.flush()
        return record

    def get_cws_params_history(self, tank_id: int) -> List[CWSParameterRecord]:
        return self.db.query(CWSParameterRecord).filter(
            CWSParameterRecord.tank_id == tank_id
        ).order_by(CWSParameterRecord.week_start.desc()).all()

    def find_cws_param(self, tank_id: int, week_start: datetime) -> Optional[CWSParameterRecord]:
        return self.db.query(CWSParameterRecord).filter(
            CWSParameterRecord.tank_id == tank_id,
            CWSParameterRecord.week_start == week_start,
        ).first()

    def save_cws_param(self, record: CWSParameterRecord) -> CWSParameterRecord:
        return self._save_weekly(CWSParameterRecord, record)

    def update_cws_param_record(self, record: CWSParameterRecord) -> CWSParameterRecord:
        record = self.db.merge(record)
        self.db.flush()
        return record

    def delete_cws_param_record(self, record_id: int) -> bool:
        return self.db.query(CWSParameterRecord).filter(CWSParameterRecord.id == record_id).delete() > 0

    def get_bws_params_history(self, tank_id: int) -> List[BWSParameterRecord]:
        return self.db.query(BWSParameterRecord).filter(
            BWSParameterRecord.tank_id == tank_id
        ).order_by(BWSParameterRecord.week_start.desc()).all()

    def save_bws_param(self, record: BWSParameterRecord) -> BWSParameterRecord:
        return self._save_weekly(BWSParameterRecord, record)

    def update_bws_param_record(self, record: BWSParameterRecord) -> BWSParameterRecord:
        record = self.db.merge(record)
        self.db.flush()
        return record

    def delete_bws_param_record(self, record_id: int) -> bool:
        return self.db.query(BWSParameterRecord).filter(BWSParameterRecord.id == record_id).delete() > 0

    # --- Alerts ---

    def save_alerts_batch(self, alerts: Iterable[FluctuationAlert]) -> List[FluctuationAlert]:
        alerts = list(alerts)
        self.db.add_all(alerts)
        self.db.flush()
        return alerts
