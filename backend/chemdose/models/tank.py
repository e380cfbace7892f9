from sqlalchemy import Column, Integer, String, DateTime, Float, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from chemdose.database import Base


class SystemType(str, enum.Enum):
    COOLING = "COOLING"
    BOILER = "BOILER"
    DENOX = "DENOX"
    OTHER = "OTHER"


class ShapeType(str, enum.Enum):
    VERTICAL_CYLINDER = "VERTICAL_CYLINDER"
    HORIZONTAL_CYLINDER = "HORIZONTAL_CYLINDER"
    RECTANGULAR = "RECTANGULAR"


class HeadType(str, enum.Enum):
    FLAT = "FLAT"
    HEMISPHERICAL = "HEMISPHERICAL"
    SEMI_ELLIPTICAL_2_1 = "SEMI_ELLIPTICAL_2_1"


class InputUnit(str, enum.Enum):
    CM = "CM"
    PERCENT = "PERCENT"  # operators enter meters


class CalculationMethod(str, enum.Enum):
    NONE = "NONE"
    CWS_BLOWDOWN = "CWS_BLOWDOWN"
    BWS_STEAM = "BWS_STEAM"


class Tank(Base):
    """A chemical storage vessel and the geometry needed to turn a level into a volume."""
    __tablename__ = "tanks"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)
    system = Column(Enum(SystemType), nullable=False, default=SystemType.OTHER)
    capacity_liters = Column(Float, nullable=True)
    factor = Column(Float, nullable=True)  # Legacy liters per cm

    # Geometry (all in cm)
    shape_type = Column(Enum(ShapeType), nullable=True)
    diameter_cm = Column(Float, nullable=True)
    length_cm = Column(Float, nullable=True)
    width_cm = Column(Float, nullable=True)
    height_cm = Column(Float, nullable=True)
    sensor_offset_cm = Column(Float, nullable=True)
    head_type = Column(Enum(HeadType), nullable=True)

    input_unit = Column(Enum(InputUnit), nullable=False, default=InputUnit.CM)
    safe_min_level = Column(Float, nullable=True)  # Same unit as input_unit
    validation_threshold = Column(Float, nullable=True, default=30.0)  # % of capacity per day
    sg_range_min = Column(Float, nullable=True)
    sg_range_max = Column(Float, nullable=True)
    calculation_method = Column(Enum(CalculationMethod), nullable=False, default=CalculationMethod.NONE)
    sort_order = Column(Integer, nullable=True, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    supplies = relationship("ChemicalSupply", back_populates="tank")
    cws_params = relationship("CWSParameterRecord", back_populates="tank")
    bws_params = relationship("BWSParameterRecord", back_populates="tank")

    def __repr__(self):
        return f"<Tank(id={self.id}, name='{self.name}')>"
