from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from chemdose.models import SystemType, ShapeType, HeadType, InputUnit, CalculationMethod


class TankBase(BaseModel):
    name: str
    description: Optional[str] = None
    system: SystemType = SystemType.OTHER
    capacity_liters: Optional[float] = None
    factor: Optional[float] = None
    shape_type: Optional[ShapeType] = None
    diameter_cm: Optional[float] = None
    length_cm: Optional[float] = None
    width_cm: Optional[float] = None
    height_cm: Optional[float] = None
    sensor_offset_cm: Optional[float] = None
    head_type: Optional[HeadType] = None
    input_unit: InputUnit = InputUnit.CM
    safe_min_level: Optional[float] = None
    validation_threshold: Optional[float] = Field(30.0, ge=0)
    sg_range_min: Optional[float] = None
    sg_range_max: Optional[float] = None
    calculation_method: CalculationMethod = CalculationMethod.NONE
    sort_order: Optional[int] = 0


class TankCreate(TankBase):
    pass


class TankUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    system: Optional[SystemType] = None
    capacity_liters: Optional[float] = None
    factor: Optional[float] = None
    shape_type: Optional[ShapeType] = None
    diameter_cm: Optional[float] = None
    length_cm: Optional[float] = None
    width_cm: Optional[float] = None
    height_cm: Optional[float] = None
    sensor_offset_cm: Optional[float] = None
    head_type: Optional[HeadType] = None
    input_unit: Optional[InputUnit] = None
    safe_min_level: Optional[float] = None
    validation_threshold: Optional[float] = Field(None, ge=0)
    sg_range_min: Optional[float] = None
    sg_range_max: Optional[float] = None
    calculation_method: Optional[CalculationMethod] = None
    sort_order: Optional[int] = None


class TankResponse(TankBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TankOrderItem(BaseModel):
    id: int
    sort_order: int


class TankReorder(BaseModel):
    items: List[TankOrderItem]


class TankStatus(BaseModel):
    tank_id: int
    tank_name: str
    capacity_liters: float
    level_cm: Optional[float] = None
    volume_liters: Optional[float] = None
    weight_kg: Optional[float] = None
    percent_full: Optional[float] = None
    is_low: bool = False
    last_reading: Optional[str] = None
