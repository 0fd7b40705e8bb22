# presence/services/event_service.py
"""Event lookup, creation and attendance reporting."""

from datetime import datetime
from sqlalchemy.orm import Session
from presence.models.event import Event
from presence.models.attendee import Attendee
from presence.models.attendance_session import AttendanceSession
from presence.models.identity import AccessIdentity
from presence.schemas.event import EventCreate, AttendeeOut, EventSessionOut, EventSessionsOut
from presence.exceptions import EventNotFound, SlugTaken
from presence.utils.logger import get_logger

logger = get_logger(__name__)


def get_event(db: Session, slug: str) -> Event:
    event = db.query(Event).filter(Event.slug == slug).first()
    if not event:
        raise EventNotFound(f"Event '{slug}' not found")
    return event


def create_event(db: Session, body: EventCreate) -> Event:
    if db.query(Event).filter(Event.slug == body.slug).first():
        raise SlugTaken(f"An event with slug '{body.slug}' already exists")
    event = Event(**body.model_dump(), created_at=datetime.utcnow())
    db.add(event)
    db.commit()
    db.refresh(event)
    logger.info(f"Event created: {event.slug} (minimum {event.minimum_attendance_minutes or 0} min)")
    return event


def list_attendees(db: Session, slug: str):
    event = get_event(db, slug)
    rows = (
        db.query(Attendee, AccessIdentity.username)
        .outerjoin(AccessIdentity, AccessIdentity.id == Attendee.identity_id)
        .filter(Attendee.event_id == event.id)
        .order_by(Attendee.registered_at, Attendee.id)
        .all()
    )
    return [
        AttendeeOut(id=a.id, event_id=a.event_id, identity_id=a.identity_id, username=username,
                    total_duration=a.total_duration or 0, is_eligible=bool(a.is_eligible),
                    registered_at=a.registered_at)
        for a, username in rows
    ]


def get_event_sessions(db: Session, slug: str) -> EventSessionsOut:
    """All attendance sessions of an event, newest first, with totals."""
    event = get_event(db, slug)
    rows = (
        db.query(AttendanceSession, AccessIdentity.username)
        .join(Attendee, Attendee.id == AttendanceSession.attendee_id)
        .outerjoin(AccessIdentity, AccessIdentity.id == Attendee.identity_id)
        .filter(Attendee.event_id == event.id)
        .order_by(AttendanceSession.started_at.desc(), AttendanceSession.id.desc())
        .all()
    )
    sessions = [
        EventSessionOut(id=s.id, attendee_id=s.attendee_id, username=username, started_at=s.started_at,
                        ended_at=s.ended_at, duration=s.duration)
        for s, username in rows
    ]
    active = sum(1 for s in sessions if s.ended_at is None)
    return EventSessionsOut(
        sessions=sessions,
        total_sessions=len(sessions),
        active_sessions=active,
        completed_sessions=len(sessions) - active,
        total_duration=sum(s.duration or 0 for s in sessions),
    )
