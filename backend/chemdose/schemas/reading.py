from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Union


class ReadingCreate(BaseModel):
    tank_id: int
    timestamp: Union[datetime, str, float]
    level: Union[float, str]  # cm, or meters / "%"-marked for PERCENT tanks
    added_amount_liters: float = Field(0.0, ge=0)
    operator_name: Optional[str] = None
    specific_gravity: Optional[float] = Field(None, gt=0)


class ReadingBatchCreate(BaseModel):
    readings: List[ReadingCreate]


class ReadingUpdate(BaseModel):
    level: Optional[Union[float, str]] = None
    added_amount_liters: Optional[float] = Field(None, ge=0)
    operator_name: Optional[str] = None
    specific_gravity: Optional[float] = Field(None, gt=0)


class ReadingResponse(BaseModel):
    id: int
    tank_id: int
    timestamp: datetime
    level_cm: float
    calculated_volume: float
    calculated_weight_kg: float
    applied_specific_gravity: float
    supply_id: Optional[int] = None
    added_amount_liters: float
    operator_name: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AnomalyResponse(BaseModel):
    reading_id: Optional[int] = None
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

    class Config:
        from_attributes = True
