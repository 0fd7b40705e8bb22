# presence/routers/occupancy.py
"""Facility occupancy: read + manual reset endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from presence.database import get_db
from presence.schemas.occupancy import OccupancyOut
from presence.services.occupancy_service import get_occupancy, list_occupancy, reset_occupancy

router = APIRouter()


@router.get("/occupancy", response_model=list[OccupancyOut])
def get_all_occupancy(db: Session = Depends(get_db)):
    """Current head count for every facility."""
    return list_occupancy(db)


@router.get("/occupancy/{facility_id}", response_model=OccupancyOut)
def get_facility_occupancy(facility_id: int, db: Session = Depends(get_db)):
    """Head count, capacity and active sessions of one facility."""
    return get_occupancy(db, facility_id)


@router.put("/occupancy/{facility_id}/reset", response_model=OccupancyOut, summary="Close every active stay")
def reset_facility_occupancy(facility_id: int, timestamp: Optional[int] = None, db: Session = Depends(get_db)):
    """Manually empty a facility. Use after reader outages or miscounts."""
    return reset_occupancy(db, facility_id, timestamp)
