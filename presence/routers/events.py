# presence/routers/events.py
"""
Events, registrations and RFID attendance.
POST /events/{slug}/sessions/toggle: attendance reader tap.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from presence.database import get_db
from presence.schemas.access_event import ScanRequest
from presence.schemas.event import (
    EventCreate, EventOut, RegistrationRequest, AttendeeOut, ToggleSessionResult, EventSessionsOut,
)
from presence.services import event_service, attendance_service

router = APIRouter()


@router.post("/events", response_model=EventOut, status_code=201)
def create_event(body: EventCreate, db: Session = Depends(get_db)):
    return event_service.create_event(db, body)


@router.get("/events/{slug}", response_model=EventOut)
def get_event(slug: str, db: Session = Depends(get_db)):
    return event_service.get_event(db, slug)


@router.post("/events/{slug}/sessions/toggle", response_model=ToggleSessionResult, summary="RFID attendance tap")
async def toggle_event_session(slug: str, body: ScanRequest, db: Session = Depends(get_db)):
    """Checks the attendee in, or out if a session is already open."""
    return await attendance_service.toggle_session(db, body.card_id, slug, body.timestamp)


@router.get("/events/{slug}/sessions", response_model=EventSessionsOut)
def list_event_sessions(slug: str, db: Session = Depends(get_db)):
    return event_service.get_event_sessions(db, slug)


@router.get("/events/{slug}/attendees", response_model=list[AttendeeOut])
def list_event_attendees(slug: str, db: Session = Depends(get_db)):
    return event_service.list_attendees(db, slug)


@router.post("/events/{slug}/attendees", status_code=201)
def register_for_event(slug: str, body: RegistrationRequest, db: Session = Depends(get_db)):
    attendee = attendance_service.register_attendee(db, slug, body.username)
    return {"status": "registered", "event": slug, "username": body.username,
            "attendee_id": attendee.id, "registered_at": attendee.registered_at}


@router.delete("/events/{slug}/attendees/{username}")
def unregister_from_event(slug: str, username: str, db: Session = Depends(get_db)):
    """Deletes the registration and every attendance session recorded for it."""
    return attendance_service.unregister_attendee(db, slug, username)
