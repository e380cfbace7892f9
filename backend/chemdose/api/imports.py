from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, Query
from sqlalchemy.orm import Session
from dataclasses import asdict
import logging

from chemdose.config import settings
from chemdose.database import get_db
from chemdose.services.anomaly_detection import AnomalyOptions
from chemdose.services.import_service import ImportResult, SpreadsheetImporter
from chemdose.services.spreadsheets import read_rows
from chemdose.services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter()


def _importer(db: Session) -> SpreadsheetImporter:
    return SpreadsheetImporter(
        StorageService(db),
        AnomalyOptions.from_settings(settings),
        future_tolerance_days=settings.future_tolerance_days,
    )


async def _rows(file: UploadFile):
    content = await file.read()
    try:
        return read_rows(file.filename, content)
    except (ValueError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"Could not read {file.filename}: {e}")


def _result(result: ImportResult) -> dict:
    return {**asdict(result), "skipped": result.skipped}


def _run(db: Session, label: str, action):
    try:
        return action()
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"{label} import failed: {e}")
        raise HTTPException(status_code=500, detail=f"{label} import failed: {e}")


@router.post("/levels")
async def import_levels(
    file: UploadFile = File(...),
    confirm: bool = Query(False, description="Save even when anomalies are detected"),
    db: Session = Depends(get_db)
):
    """
    Level sheet: one row per tank, one column per date.
    Without confirm, detected anomalies are returned as 409 and nothing is saved.
    """
    rows = await _rows(file)
    importer = _importer(db)
    plan = importer.prepare_levels(rows)

    if plan.report.has_anomalies and not confirm:
        raise HTTPException(
            status_code=409,
            detail={
                "message": "Anomalies detected, resubmit with confirm=true to import anyway",
                "anomalies": [asdict(a) for a in plan.report.anomalies],
                "refill_count": plan.report.refill_count,
                "pending": len(plan.candidates),
                "issues": [asdict(i) for i in plan.issues],
            },
        )

    result = _run(db, "Level", lambda: importer.commit_levels(plan))
    return {**_result(result), "anomalies": [asdict(a) for a in plan.report.anomalies]}


@router.post("/supplies")
async def import_supplies(
    file: UploadFile = File(...),
    confirm: bool = Query(False, description="Save even when SG is outside the qualified range"),
    db: Session = Depends(get_db)
):
    rows = await _rows(file)
    importer = _importer(db)
    result = _run(db, "Contract", lambda: importer.import_supplies(rows, confirm=confirm))
    if result.needs_confirmation:
        raise HTTPException(status_code=409, detail={
            "message": "Specific gravity outside the qualified range, resubmit with confirm=true to import anyway",
            **_result(result),
        })
    return _result(result)


@router.post("/cws")
async def import_cws(file: UploadFile = File(...), db: Session = Depends(get_db)):
    rows = await _rows(file)
    importer = _importer(db)
    return _result(_run(db, "Cooling parameter", lambda: importer.import_cws(rows)))


@router.post("/bws")
async def import_bws(file: UploadFile = File(...), db: Session = Depends(get_db)):
    rows = await _rows(file)
    importer = _importer(db)
    return _result(_run(db, "Boiler parameter", lambda: importer.import_bws(rows)))
