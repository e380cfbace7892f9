from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import date, datetime
from typing import Optional, List
import logging

from chemdose.database import get_db
from chemdose.models import ChemicalSupply
from chemdose.schemas import SupplyCreate, SupplyUpdate, SupplyResponse
from chemdose.services.contracts import check_specific_gravity, inherited_target_ppm
from chemdose.services.normalization import normalize_timestamp, to_midnight
from chemdose.services.reading_service import ReadingService
from chemdose.services.storage import StorageService

logger = logging.getLogger(__name__)

router = APIRouter()


def _sg_conflict(warnings: List[str]) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={
            "message": "Specific gravity outside the qualified range, resubmit with confirm=true to save anyway",
            "warnings": warnings,
        },
    )


def _parse_start_date(value) -> datetime:
    start = normalize_timestamp(value)
    if start is None:
        raise HTTPException(status_code=400, detail=f"Invalid start date: {value!r}")
    return start


@router.get("", response_model=List[SupplyResponse])
async def list_supplies(tank_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    """Contracts ordered by start date."""
    return StorageService(db).get_supplies(tank_id)


@router.get("/active", response_model=Optional[SupplyResponse])
async def get_active_supply(
    tank_id: int = Query(...),
    on: Optional[date] = Query(None, description="Defaults to today"),
    db: Session = Depends(get_db)
):
    """The contract in effect for a tank on a day, or null."""
    return StorageService(db).get_active_supply(tank_id, to_midnight(on or date.today()))


@router.post("")
async def create_supply(
    supply: SupplyCreate,
    confirm: bool = Query(False, description="Save even when SG is outside the qualified range"),
    db: Session = Depends(get_db)
):
    """
    Save a contract. A contract for the same tank and start date replaces
    the earlier one. Readings from the start date on are re-weighted.
    """
    storage = StorageService(db)
    tank = storage.get_tank(supply.tank_id)
    if not tank:
        raise HTTPException(status_code=404, detail="Tank not found")
    start = _parse_start_date(supply.start_date)

    warnings = check_specific_gravity(tank, supply.specific_gravity)
    if warnings and not confirm:
        raise _sg_conflict(warnings)

    data = supply.model_dump(exclude={'start_date'})
    if not data.get('target_ppm'):
        data['target_ppm'] = inherited_target_ppm(storage.get_supplies(tank.id), tank.id, start)

    try:
        saved = storage.save_supply(ChemicalSupply(start_date=start, **data))
        sg_updated = ReadingService(storage).recalculate_specific_gravity(tank_id=tank.id, since=start)
        storage.commit()
    except Exception as e:
        storage.rollback()
        logger.error(f"Failed to save contract for {tank.name}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save contract")

    db.refresh(saved)
    return {
        "supply": SupplyResponse.model_validate(saved),
        "sg_updated": sg_updated,
        "warnings": warnings,
    }


@router.post("/recalculate-sg")
async def recalculate_sg(tank_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    """Re-snapshot SG, volume and weight of all readings (optionally one tank)."""
    storage = StorageService(db)
    updated = ReadingService(storage).recalculate_specific_gravity(tank_id=tank_id)
    storage.commit()
    return {"updated": updated}


@router.put("/{supply_id}")
async def update_supply(
    supply_id: int,
    update: SupplyUpdate,
    confirm: bool = Query(False),
    db: Session = Depends(get_db)
):
    storage = StorageService(db)
    supply = storage.get_supply(supply_id)
    if not supply:
        raise HTTPException(status_code=404, detail="Contract not found")

    update_data = update.model_dump(exclude_unset=True)
    since = supply.start_date
    if 'start_date' in update_data:
        update_data['start_date'] = _parse_start_date(update_data['start_date'])
        since = min(since, update_data['start_date'])

    warnings = []
    if update_data.get('specific_gravity') is not None:
        warnings = check_specific_gravity(supply.tank, update_data['specific_gravity'])
        if warnings and not confirm:
            raise _sg_conflict(warnings)

    for field, value in update_data.items():
        setattr(supply, field, value)
    storage.update_supply(supply)
    sg_updated = ReadingService(storage).recalculate_specific_gravity(tank_id=supply.tank_id, since=since)
    storage.commit()
    db.refresh(supply)
    return {
        "supply": SupplyResponse.model_validate(supply),
        "sg_updated": sg_updated,
        "warnings": warnings,
    }


@router.delete("/{supply_id}")
async def delete_supply(supply_id: int, db: Session = Depends(get_db)):
    """
    Delete a contract. Its readings fall back to the preceding contract, or
    to the default SG when none is left.
    """
    storage = StorageService(db)
    supply = storage.get_supply(supply_id)
    if not supply:
        raise HTTPException(status_code=404, detail="Contract not found")
    tank_id, since = supply.tank_id, supply.start_date
    storage.delete_supply(supply_id)
    sg_updated = ReadingService(storage).recalculate_specific_gravity(tank_id=tank_id, since=since)
    storage.commit()
    return {"message": "Contract deleted", "sg_updated": sg_updated}
