from sqlalchemy import Column, Integer, Float, DateTime, String, Boolean, Text
from datetime import datetime
from chemdose.database import Base


class FluctuationAlert(Base):
    """Audit record of a level anomaly the operator confirmed."""
    __tablename__ = "fluctuation_alerts"

    id = Column(Integer, primary_key=True, index=True)
    tank_id = Column(Integer, nullable=False, index=True)
    tank_name = Column(String(255), nullable=True)
    date_str = Column(String(20), nullable=False)  # YYYY-MM-DD
    reason = Column(Text, nullable=False)
    current_value = Column(Float, nullable=True)
    prev_value = Column(Float, nullable=True)
    next_value = Column(Float, nullable=True)
    is_possible_refill = Column(Boolean, default=False)
    source = Column(String(20), default="MANUAL")  # 'MANUAL' or 'IMPORT'
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<FluctuationAlert(id={self.id}, tank_id={self.tank_id}, date='{self.date_str}')>"


class ImportantNote(Base):
    __tablename__ = "important_notes"

    id = Column(Integer, primary_key=True, index=True)
    date_str = Column(String(20), nullable=False)
    area = Column(String(255), nullable=True)
    chemical_name = Column(String(255), nullable=True)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<ImportantNote(id={self.id}, date='{self.date_str}')>"
