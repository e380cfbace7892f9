from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List

from chemdose.config import settings
from chemdose.database import get_db
from chemdose.models import Tank
from chemdose.schemas import TankCreate, TankUpdate, TankResponse, TankReorder, TankStatus
from chemdose.services.reading_service import tank_status
from chemdose.services.storage import StorageService

router = APIRouter()


def _get_tank_or_404(db: Session, tank_id: int) -> Tank:
    tank = StorageService(db).get_tank(tank_id)
    if not tank:
        raise HTTPException(status_code=404, detail="Tank not found")
    return tank


@router.get("", response_model=List[TankResponse])
async def list_tanks(db: Session = Depends(get_db)):
    """List tanks in display order."""
    return StorageService(db).get_tanks()


@router.post("", response_model=TankResponse)
async def create_tank(tank: TankCreate, db: Session = Depends(get_db)):
    """Create a new tank."""
    if StorageService(db).find_tank_by_name(tank.name):
        raise HTTPException(status_code=400, detail="Tank already exists")

    db_tank = Tank(**tank.model_dump())
    db.add(db_tank)
    db.commit()
    db.refresh(db_tank)
    return db_tank


@router.put("/reorder")
async def reorder_tanks(order: TankReorder, db: Session = Depends(get_db)):
    """Bulk update of sort_order."""
    storage = StorageService(db)
    updated = 0
    for item in order.items:
        tank = storage.get_tank(item.id)
        if tank is None:
            raise HTTPException(status_code=404, detail=f"Tank {item.id} not found")
        tank.sort_order = item.sort_order
        updated += 1
    db.commit()
    return {"updated": updated}


@router.get("/{tank_id}", response_model=TankResponse)
async def get_tank(tank_id: int, db: Session = Depends(get_db)):
    return _get_tank_or_404(db, tank_id)


@router.get("/{tank_id}/status", response_model=TankStatus)
async def get_tank_status(tank_id: int, db: Session = Depends(get_db)):
    """Latest level, fill percentage and low-level flag."""
    tank = _get_tank_or_404(db, tank_id)
    readings = StorageService(db).get_readings(tank_id=tank_id)
    return tank_status(tank, readings, default_capacity=settings.default_tank_capacity_liters)


@router.put("/{tank_id}", response_model=TankResponse)
async def update_tank(tank_id: int, tank_update: TankUpdate, db: Session = Depends(get_db)):
    """
    Update a tank. Stored readings keep their volume snapshot until the SG
    recalculation runs (on demand or nightly), which recomputes volumes from
    the current geometry.
    """
    tank = _get_tank_or_404(db, tank_id)

    update_data = tank_update.model_dump(exclude_unset=True)
    if 'name' in update_data:
        other = StorageService(db).find_tank_by_name(update_data['name'])
        if other is not None and other.id != tank_id:
            raise HTTPException(status_code=400, detail="Tank name already in use")
    for field, value in update_data.items():
        setattr(tank, field, value)

    db.commit()
    db.refresh(tank)
    return tank


@router.delete("/{tank_id}")
async def delete_tank(tank_id: int, db: Session = Depends(get_db)):
    """Delete a tank with its contracts and parameters. Readings are kept."""
    tank = _get_tank_or_404(db, tank_id)
    for child in list(tank.supplies) + list(tank.cws_params) + list(tank.bws_params):
        db.delete(child)
    db.delete(tank)
    db.commit()
    return {"message": "Tank deleted"}
