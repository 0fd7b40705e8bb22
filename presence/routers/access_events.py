# presence/routers/access_events.py
"""Audit log of every tap, successful or denied."""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from presence.database import get_db
from presence.schemas.access_event import AccessEventOut
from presence.services.access_log_service import list_access_events

router = APIRouter()


@router.get("/access-events", response_model=list[AccessEventOut], summary="List access log")
def get_access_events(facility_id: Optional[int] = None, event_id: Optional[int] = None,
                      identity_id: Optional[int] = None, success: Optional[bool] = None,
                      limit: int = 50, db: Session = Depends(get_db)):
    return list_access_events(db, facility_id, event_id, identity_id, success, limit)
