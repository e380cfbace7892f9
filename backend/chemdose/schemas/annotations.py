from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List


class AlertCreate(BaseModel):
    tank_id: int
    tank_name: Optional[str] = None
    date_str: str
    reason: str
    current_value: Optional[float] = None
    prev_value: Optional[float] = None
    next_value: Optional[float] = None
    is_possible_refill: bool = False
    source: str = "MANUAL"
    note: Optional[str] = None


class AlertNote(BaseModel):
    note: Optional[str] = None


class AlertResponse(AlertCreate):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BatchDelete(BaseModel):
    ids: List[int]


class NoteBase(BaseModel):
    date_str: str
    area: Optional[str] = None
    chemical_name: Optional[str] = None
    note: str


class NoteCreate(NoteBase):
    pass


class NoteUpdate(BaseModel):
    date_str: Optional[str] = None
    area: Optional[str] = None
    chemical_name: Optional[str] = None
    note: Optional[str] = None


class NoteResponse(NoteBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
