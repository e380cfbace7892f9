from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, Union


class SupplyBase(BaseModel):
    tank_id: int
    supplier_name: str
    chemical_name: Optional[str] = None
    specific_gravity: float = Field(..., gt=0)
    price: Optional[float] = Field(None, ge=0)
    target_ppm: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class SupplyCreate(SupplyBase):
    start_date: Union[datetime, str, float]


class SupplyUpdate(BaseModel):
    supplier_name: Optional[str] = None
    chemical_name: Optional[str] = None
    specific_gravity: Optional[float] = Field(None, gt=0)
    price: Optional[float] = Field(None, ge=0)
    start_date: Optional[Union[datetime, str, float]] = None
    target_ppm: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class SupplyResponse(SupplyBase):
    id: int
    start_date: datetime
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
