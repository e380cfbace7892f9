from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from chemdose.database import Base


class CWSParameterRecord(Base):
    """Weekly cooling-water production snapshot."""
    __tablename__ = "cws_parameters"

    id = Column(Integer, primary_key=True, index=True)
    tank_id = Column(Integer, ForeignKey("tanks.id"), nullable=False, index=True)
    week_start = Column(DateTime, nullable=False, index=True)  # Monday, local midnight
    circulation_rate = Column(Float, nullable=True)  # m3/h
    temp_outlet = Column(Float, nullable=True)
    temp_return = Column(Float, nullable=True)
    temp_diff = Column(Float, nullable=True)
    cws_hardness = Column(Float, nullable=True)  # ppm
    makeup_hardness = Column(Float, nullable=True)  # ppm
    concentration_cycles = Column(Float, nullable=True)  # Manual override
    target_ppm = Column(Float, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('tank_id', 'week_start', name='uq_cws_tank_week'),
    )

    tank = relationship("Tank", back_populates="cws_params")

    def __repr__(self):
        return f"<CWSParameterRecord(id={self.id}, tank_id={self.tank_id}, week_start='{self.week_start}')>"


class BWSParameterRecord(Base):
    """Weekly boiler steam production."""
    __tablename__ = "bws_parameters"

    id = Column(Integer, primary_key=True, index=True)
    tank_id = Column(Integer, ForeignKey("tanks.id"), nullable=False, index=True)
    week_start = Column(DateTime, nullable=False, index=True)
    steam_production = Column(Float, nullable=True)  # Tons for the week
    target_ppm = Column(Float, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('tank_id', 'week_start', name='uq_bws_tank_week'),
    )

    tank = relationship("Tank", back_populates="bws_params")

    def __repr__(self):
        return f"<BWSParameterRecord(id={self.id}, tank_id={self.tank_id}, week_start='{self.week_start}')>"
