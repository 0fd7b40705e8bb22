# presence/routers/facilities.py
"""Facility CRUD, usage history and the RFID reader endpoint."""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from presence.database import get_db
from presence.schemas.access_event import ScanRequest
from presence.schemas.facility import (
    FacilityCreate, FacilityUpdate, FacilityOut, UsageHistoryOut, FacilityStatusOut,
)
from presence.schemas.occupancy import ScanResult
from presence.services import facility_service
from presence.services.occupancy_service import record_scan

router = APIRouter()


@router.get("/facilities", response_model=list[FacilityOut])
def list_facilities(active_only: bool = False, db: Session = Depends(get_db)):
    return facility_service.list_facilities(db, active_only)


@router.post("/facilities", response_model=FacilityOut, status_code=201)
def create_facility(body: FacilityCreate, db: Session = Depends(get_db)):
    return facility_service.create_facility(db, body)


@router.get("/facilities/status", response_model=FacilityStatusOut, summary="Is anyone inside?")
def facility_open_status(db: Session = Depends(get_db)):
    return facility_service.get_open_status(db)


@router.patch("/facilities/{facility_id}", response_model=FacilityOut)
def update_facility(facility_id: int, body: FacilityUpdate, db: Session = Depends(get_db)):
    return facility_service.update_facility(db, facility_id, body)


@router.get("/facilities/{facility_id}/history", response_model=UsageHistoryOut)
def facility_usage_history(facility_id: int, page: int = 1, limit: int = 20, include_active: bool = True,
                           start_date: Optional[int] = None, end_date: Optional[int] = None,
                           db: Session = Depends(get_db)):
    """Past and current stays, newest first."""
    return facility_service.get_usage_history(db, facility_id, page, limit, include_active, start_date, end_date)


@router.post("/facilities/{facility_id}/scan", response_model=ScanResult, summary="RFID reader tap")
async def scan_card(facility_id: int, body: ScanRequest, db: Session = Depends(get_db)):
    """
    Toggles the card holder in or out of the facility.
    Denied taps are still written to the access log before the error is returned.
    """
    return await record_scan(db, body.card_id, facility_id, body.timestamp)
