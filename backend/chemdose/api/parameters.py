from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import date, datetime
from typing import List

from chemdose.database import get_db
from chemdose.models import CWSParameterRecord, BWSParameterRecord
from chemdose.schemas import (
    CWSParamCreate, CWSParamUpdate, CWSParamResponse, BWSParamCreate, BWSParamUpdate, BWSParamResponse,
)
from chemdose.services.aggregation import week_start
from chemdose.services.normalization import normalize_timestamp, to_midnight
from chemdose.services.storage import StorageService

router = APIRouter()


def _week_of(db: Session, tank_id: int, value) -> datetime:
    """Validate the tank and snap the given day to its Monday."""
    if StorageService(db).get_tank(tank_id) is None:
        raise HTTPException(status_code=404, detail="Tank not found")
    moment = normalize_timestamp(value)
    if moment is None:
        raise HTTPException(status_code=400, detail=f"Invalid date: {value!r}")
    if moment.date() > date.today():
        raise HTTPException(status_code=400, detail=f"Future date not allowed: {moment.date()}")
    return to_midnight(week_start(moment.date()))


def _apply_update(db: Session, model, record_id: int, update):
    record = db.query(model).filter(model.id == record_id).first()
    if not record:
        raise HTTPException(status_code=404, detail="Parameter record not found")
    for field, value in update.model_dump(exclude_unset=True).items():
        setattr(record, field, value)
    return record


# --- Cooling water ---

@router.get("/cws", response_model=List[CWSParamResponse])
async def cws_history(tank_id: int = Query(...), db: Session = Depends(get_db)):
    """Weekly cooling-water records, newest first."""
    return StorageService(db).get_cws_params_history(tank_id)


@router.post("/cws", response_model=CWSParamResponse)
async def save_cws(params: CWSParamCreate, db: Session = Depends(get_db)):
    """Save the record for the week containing the given date, replacing an existing one."""
    storage = StorageService(db)
    week = _week_of(db, params.tank_id, params.date)
    record = storage.save_cws_param(
        CWSParameterRecord(week_start=week, **params.model_dump(exclude={'date'}))
    )
    storage.commit()
    db.refresh(record)
    return record


@router.put("/cws/{record_id}", response_model=CWSParamResponse)
async def update_cws(record_id: int, update: CWSParamUpdate, db: Session = Depends(get_db)):
    storage = StorageService(db)
    record = storage.update_cws_param_record(_apply_update(db, CWSParameterRecord, record_id, update))
    storage.commit()
    db.refresh(record)
    return record


@router.delete("/cws/{record_id}")
async def delete_cws(record_id: int, db: Session = Depends(get_db)):
    storage = StorageService(db)
    if not storage.delete_cws_param_record(record_id):
        raise HTTPException(status_code=404, detail="Parameter record not found")
    storage.commit()
    return {"message": "Parameter record deleted"}


# --- Boiler water ---

@router.get("/bws", response_model=List[BWSParamResponse])
async def bws_history(tank_id: int = Query(...), db: Session = Depends(get_db)):
    return StorageService(db).get_bws_params_history(tank_id)


@router.post("/bws", response_model=BWSParamResponse)
async def save_bws(params: BWSParamCreate, db: Session = Depends(get_db)):
    storage = StorageService(db)
    week = _week_of(db, params.tank_id, params.date)
    record = storage.save_bws_param(
        BWSParameterRecord(week_start=week, **params.model_dump(exclude={'date'}))
    )
    storage.commit()
    db.refresh(record)
    return record


@router.put("/bws/{record_id}", response_model=BWSParamResponse)
async def update_bws(record_id: int, update: BWSParamUpdate, db: Session = Depends(get_db)):
    storage = StorageService(db)
    record = storage.update_bws_param_record(_apply_update(db, BWSParameterRecord, record_id, update))
    storage.commit()
    db.refresh(record)
    return record


@router.delete("/bws/{record_id}")
async def delete_bws(record_id: int, db: Session = Depends(get_db)):
    storage = StorageService(db)
    if not storage.delete_bws_param_record(record_id):
        raise HTTPException(status_code=404, detail="Parameter record not found")
    storage.commit()
    return {"message": "Parameter record deleted"}
