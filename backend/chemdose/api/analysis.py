from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import date, timedelta
from typing import Optional

from chemdose.database import get_db
from chemdose.services.analysis import AnalysisService
from chemdose.services.consumption import Metric
from chemdose.services.storage import StorageService

router = APIRouter()


@router.get("/usage")
async def usage_analysis(
    tank_id: int = Query(...),
    start: Optional[date] = Query(None, description="Defaults to 90 days ago"),
    end: Optional[date] = Query(None, description="Defaults to today"),
    metric: Metric = Query(Metric.WEIGHT),
    db: Session = Depends(get_db)
):
    """
    Daily usage series over the range widened to whole weeks, weekly and
    monthly actual vs. theoretical with deviation, and summary statistics.
    """
    tank = StorageService(db).get_tank(tank_id)
    if not tank:
        raise HTTPException(status_code=404, detail="Tank not found")
    end = end or date.today()
    start = start or end - timedelta(days=90)
    if start > end:
        raise HTTPException(status_code=400, detail="start must not be after end")
    return AnalysisService(db).usage_report(tank, start, end, metric)


@router.get("/annual")
async def annual_overview(
    year: Optional[int] = Query(None, ge=1900, le=2200),
    tank_id: Optional[int] = Query(None),
    metric: Metric = Query(Metric.WEIGHT),
    db: Session = Depends(get_db)
):
    """Per tank, twelve months of actual and theoretical usage with contract price/SG."""
    return {
        "year": year or date.today().year,
        "tanks": AnalysisService(db).annual_overview(year or date.today().year, metric, tank_id),
    }
