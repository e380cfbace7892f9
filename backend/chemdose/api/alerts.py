from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional, List

from chemdose.database import get_db
from chemdose.models import FluctuationAlert
from chemdose.schemas import AlertCreate, AlertNote, AlertResponse, BatchDelete
from chemdose.services.storage import StorageService

router = APIRouter()


@router.get("", response_model=List[AlertResponse])
async def list_alerts(
    tank_id: Optional[int] = Query(None),
    start: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db: Session = Depends(get_db)
):
    """Fluctuation alerts, newest day first."""
    query = db.query(FluctuationAlert)
    if tank_id is not None:
        query = query.filter(FluctuationAlert.tank_id == tank_id)
    if start:
        query = query.filter(FluctuationAlert.date_str >= start)
    if end:
        query = query.filter(FluctuationAlert.date_str <= end)
    return query.order_by(FluctuationAlert.date_str.desc(), FluctuationAlert.id.desc()).all()


@router.post("", response_model=List[AlertResponse])
async def create_alerts(alerts: List[AlertCreate], db: Session = Depends(get_db)):
    storage = StorageService(db)
    saved = storage.save_alerts_batch(FluctuationAlert(**a.model_dump()) for a in alerts)
    storage.commit()
    for alert in saved:
        db.refresh(alert)
    return saved


@router.post("/batch-delete")
async def batch_delete_alerts(payload: BatchDelete, db: Session = Depends(get_db)):
    deleted = db.query(FluctuationAlert).filter(
        FluctuationAlert.id.in_(payload.ids)
    ).delete(synchronize_session=False)
    db.commit()
    return {"deleted": deleted}


@router.put("/{alert_id}/note", response_model=AlertResponse)
async def set_alert_note(alert_id: int, payload: AlertNote, db: Session = Depends(get_db)):
    """Attach the operator's explanation to an alert."""
    alert = db.query(FluctuationAlert).filter(FluctuationAlert.id == alert_id).first()
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    alert.note = payload.note
    db.commit()
    db.refresh(alert)
    return alert


@router.delete("/{alert_id}")
async def delete_alert(alert_id: int, db: Session = Depends(get_db)):
    alert = db.query(FluctuationAlert).filter(FluctuationAlert.id == alert_id).first()
    if not alert:
        raise HTTPException(status_code=404, detail="Alert not found")
    db.delete(alert)
    db.commit()
    return {"message": "Alert deleted"}
