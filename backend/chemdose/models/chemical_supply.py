from sqlalchemy import Column, Integer, Float, DateTime, String, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from chemdose.database import Base


class ChemicalSupply(Base):
    """A supply contract for one tank, effective from start_date until superseded."""
    __tablename__ = "chemical_supplies"

    id = Column(Integer, primary_key=True, index=True)
    tank_id = Column(Integer, ForeignKey("tanks.id"), nullable=False, index=True)
    supplier_name = Column(String(255), nullable=False)
    chemical_name = Column(String(255), nullable=True)
    specific_gravity = Column(Float, nullable=False)
    price = Column(Float, nullable=True)  # Per kg
    start_date = Column(DateTime, nullable=False, index=True)  # Local midnight
    target_ppm = Column(Float, nullable=True)
    notes = Column(String(1000), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('tank_id', 'start_date', name='uq_supply_tank_start'),
        CheckConstraint('specific_gravity > 0', name='check_sg_positive'),
    )

    tank = relationship("Tank", back_populates="supplies")

    def __repr__(self):
        return f"<ChemicalSupply(id={self.id}, tank_id={self.tank_id}, start_date='{self.start_date}', sg={self.specific_gravity})>"
