from sqlalchemy import Column, Integer, Float, DateTime, String, Index
from datetime import datetime
from chemdose.database import Base


class Reading(Base):
    """
    One level measurement for a tank.
    Volume, weight and SG are snapshots taken at save time; they are only
    rewritten by an explicit specific-gravity recalculation.
    """
    __tablename__ = "readings"

    id = Column(Integer, primary_key=True, index=True)
    # No foreign key: readings outlive the tank they were taken on
    tank_id = Column(Integer, nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False, index=True)  # Local midnight
    level_cm = Column(Float, nullable=False)

    calculated_volume = Column(Float, nullable=False, default=0.0)  # Liters
    calculated_weight_kg = Column(Float, nullable=False, default=0.0)
    applied_specific_gravity = Column(Float, nullable=False, default=1.0)
    supply_id = Column(Integer, nullable=True)

    added_amount_liters = Column(Float, nullable=False, default=0.0)
    operator_name = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_readings_tank_timestamp', 'tank_id', 'timestamp'),
    )

    def __repr__(self):
        return f"<Reading(id={self.id}, tank_id={self.tank_id}, timestamp='{self.timestamp}', level_cm={self.level_cm})>"
