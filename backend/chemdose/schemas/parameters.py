from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Union


class CWSParamCreate(BaseModel):
    tank_id: int
    date: Union[datetime, str, float]  # Any day of the week
    circulation_rate: Optional[float] = None
    temp_outlet: Optional[float] = None
    temp_return: Optional[float] = None
    temp_diff: Optional[float] = None
    cws_hardness: Optional[float] = None
    makeup_hardness: Optional[float] = None
    concentration_cycles: Optional[float] = None
    target_ppm: Optional[float] = None


class CWSParamUpdate(BaseModel):
    circulation_rate: Optional[float] = None
    temp_outlet: Optional[float] = None
    temp_return: Optional[float] = None
    temp_diff: Optional[float] = None
    cws_hardness: Optional[float] = None
    makeup_hardness: Optional[float] = None
    concentration_cycles: Optional[float] = None
    target_ppm: Optional[float] = None


class CWSParamResponse(CWSParamUpdate):
    id: int
    tank_id: int
    week_start: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BWSParamCreate(BaseModel):
    tank_id: int
    date: Union[datetime, str, float]
    steam_production: Optional[float] = None
    target_ppm: Optional[float] = None


class BWSParamUpdate(BaseModel):
    steam_production: Optional[float] = None
    target_ppm: Optional[float] = None


class BWSParamResponse(BWSParamUpdate):
    id: int
    tank_id: int
    week_start: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
