from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from dataclasses import asdict
from datetime import date, timedelta
from typing import Optional, List
import logging

from chemdose.config import settings
from chemdose.database import get_db
from chemdose.schemas import ReadingBatchCreate, ReadingUpdate, ReadingResponse
from chemdose.services.anomaly_detection import AnomalyOptions, AnomalyReport
from chemdose.services.normalization import normalize_level, normalize_timestamp, to_midnight
from chemdose.services.reading_service import ReadingService, build_reading
from chemdose.services.spreadsheets import export_readings
from chemdose.services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter()

EXPORT_MEDIA_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "csv": "text/csv",
}


def anomaly_conflict(report: AnomalyReport) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "message": "Anomalies detected, resubmit with confirm=true to save anyway",
            "anomalies": [asdict(a) for a in report.anomalies],
            "refill_count": report.refill_count,
        },
    )


def _date_range(start: Optional[date], end: Optional[date]):
    return (
        to_midnight(start) if start else None,
        to_midnight(end) + timedelta(days=1) - timedelta(microseconds=1) if end else None,
    )


@router.get("", response_model=List[ReadingResponse])
async def list_readings(
    tank_id: Optional[int] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    start_dt, end_dt = _date_range(start, end)
    return StorageService(db).get_readings(tank_id=tank_id, start=start_dt, end=end_dt)


@router.post("")
async def create_readings(
    payload: ReadingBatchCreate,
    confirm: bool = Query(False, description="Save even when anomalies are detected"),
    db: Session = Depends(get_db)
):
    """
    Two-phase reading entry. Without confirm, detected anomalies are
    returned as 409 and nothing is written; with confirm the readings are
    saved and the anomalies stored as alerts.
    """
    storage = StorageService(db)
    service = ReadingService(storage, AnomalyOptions.from_settings(settings))
    supplies = storage.get_supplies()
    today = date.today() + timedelta(days=settings.future_tolerance_days)

    # one reading per tank and day, the last entry wins
    pending = {}
    for item in payload.readings:
        tank = storage.get_tank(item.tank_id)
        if tank is None:
            raise HTTPException(status_code=404, detail=f"Tank {item.tank_id} not found")
        timestamp = normalize_timestamp(item.timestamp)
        if timestamp is None:
            raise HTTPException(status_code=400, detail=f"Invalid timestamp: {item.timestamp!r}")
        if timestamp.date() > today:
            raise HTTPException(status_code=400, detail=f"Future date not allowed: {timestamp.date()}")
        level = normalize_level(item.level, tank)
        if level is None:
            raise HTTPException(status_code=400, detail=f"Invalid level: {item.level!r}")

        existing = storage.get_readings(tank_id=tank.id)
        same_day = service.same_day_reading(tank.id, timestamp, existing)
        reading = build_reading(
            tank,
            timestamp,
            level,
            supplies,
            added_amount_liters=item.added_amount_liters,
            operator_name=item.operator_name,
            specific_gravity=item.specific_gravity,
            reading_id=same_day.id if same_day else None,
        )
        pending[(tank.id, timestamp.date())] = (tank, reading)

    by_tank = {}
    for tank, reading in pending.values():
        by_tank.setdefault(tank.id, (tank, []))[1].append(reading)

    report = AnomalyReport()
    candidates = []
    for tank, readings in by_tank.values():
        report.anomalies.extend(service.check(tank, readings).anomalies)
        candidates.extend(readings)

    if report.has_anomalies and not confirm:
        raise anomaly_conflict(report)

    try:
        result = service.commit(candidates, report, source="MANUAL")
    except Exception as e:
        storage.rollback()
        logger.error(f"Failed to save readings: {e}")
        raise HTTPException(status_code=500, detail="Failed to save readings")
    return {**result, "anomalies": [asdict(a) for a in report.anomalies]}


@router.get("/export")
async def export(
    tank_id: Optional[int] = Query(None),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    format: str = Query("xlsx", pattern="^(xlsx|csv)$"),
    db: Session = Depends(get_db)
):
    """Download readings as .xlsx or .csv."""
    storage = StorageService(db)
    start_dt, end_dt = _date_range(start, end)
    readings = storage.get_readings(tank_id=tank_id, start=start_dt, end=end_dt)
    tanks = {t.id: t for t in storage.get_tanks()}
    content = export_readings(readings, tanks, fmt=format)
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f"attachment; filename=readings.{format}"},
    )


@router.put("/{reading_id}", response_model=ReadingResponse)
async def update_reading(reading_id: int, update: ReadingUpdate, db: Session = Depends(get_db)):
    """Edit a reading; volume and weight are recomputed from the new values."""
    storage = StorageService(db)
    reading = storage.get_reading(reading_id)
    if not reading:
        raise HTTPException(status_code=404, detail="Reading not found")
    tank = storage.get_tank(reading.tank_id)
    if not tank:
        raise HTTPException(status_code=400, detail="Reading belongs to a deleted tank")

    level = reading.level_cm
    if update.level is not None:
        level = normalize_level(update.level, tank)
        if level is None:
            raise HTTPException(status_code=400, detail=f"Invalid level: {update.level!r}")

    rebuilt = build_reading(
        tank,
        reading.timestamp,
        level,
        storage.get_supplies(tank.id),
        added_amount_liters=(
            update.added_amount_liters if update.added_amount_liters is not None else reading.added_amount_liters
        ),
        operator_name=update.operator_name or reading.operator_name,
        specific_gravity=update.specific_gravity or reading.applied_specific_gravity,
        reading_id=reading.id,
    )
    saved = storage.update_reading(rebuilt)
    storage.commit()
    db.refresh(saved)
    return saved


@router.delete("/{reading_id}")
async def delete_reading(reading_id: int, db: Session = Depends(get_db)):
    storage = StorageService(db)
    if not storage.delete_reading(reading_id):
        raise HTTPException(status_code=404, detail="Reading not found")
    storage.commit()
    return {"message": "Reading deleted"}
