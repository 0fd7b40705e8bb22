# presence/services/attendance_service.py
"""
Event attendance by RFID tap, plus registration.

toggle_session:
  - card -> identity, slug -> event, (event, identity) -> attendee (locked)
  - an open attendance session means IN, none means OUT; the tap toggles it
  - check-in opens a session; check-out closes it, re-sums the attendee's
    closed sessions into total_duration and recomputes is_eligible
  - session, attendee and access_events row are committed together

A second tap while a session is open is always a check-out, never a second
open session (also enforced by a partial unique index).
"""

from typing import Optional
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from presence.models.event import Event
from presence.models.attendee import Attendee
from presence.models.attendance_session import AttendanceSession
from presence.schemas.event import ToggleSessionResult
from presence.services.identity_service import lookup_identity_by_card, get_identity
from presence.services.access_log_service import record_access_event, deny_scan
from presence.services.presence_state import ScanAction, state_of, tap
from presence.exceptions import (
    UnknownCard, EventNotFound, NotRegistered, AlreadyRegistered, EventAlreadyStarted, ClockSkew,
)
from presence.config import settings
from presence.utils.timeutil import now_ms, ms_to_minutes, MS_PER_MINUTE
from presence.utils.logger import get_logger

logger = get_logger(__name__)

_ACTION_LABELS = {ScanAction.ENTER: "check-in", ScanAction.EXIT: "check-out"}


def is_eligible(total_duration: int, minimum_attendance_minutes: Optional[int]) -> bool:
    return total_duration >= (minimum_attendance_minutes or 0) * MS_PER_MINUTE


def get_event_by_slug(db: Session, slug: str) -> Optional[Event]:
    return db.query(Event).filter(Event.slug == slug).first()


def find_attendee(db: Session, event_id: int, identity_id: int, lock: bool = False) -> Optional[Attendee]:
    q = db.query(Attendee).filter(Attendee.event_id == event_id, Attendee.identity_id == identity_id)
    if lock:
        q = q.with_for_update()
    return q.first()


def _closed_duration_total(db: Session, attendee_id: int) -> int:
    total = db.query(func.coalesce(func.sum(AttendanceSession.duration), 0)).filter(
        AttendanceSession.attendee_id == attendee_id,
        AttendanceSession.ended_at.isnot(None),
    ).scalar()
    return int(total or 0)


async def toggle_session(db: Session, card_id: str, event_slug: str,
                         timestamp: Optional[int] = None) -> ToggleSessionResult:
    timestamp = timestamp if timestamp is not None else now_ms()

    event = get_event_by_slug(db, event_slug)
    event_id = event.id if event else None

    identity = lookup_identity_by_card(db, card_id)
    if not identity:
        raise deny_scan(db, UnknownCard(), card_id=card_id, timestamp=timestamp, event_id=event_id,
                        target_ref=event_slug)
    identity_id = identity.id

    if not event:
        raise deny_scan(db, EventNotFound(f"Event '{event_slug}' not found"), card_id=card_id,
                        timestamp=timestamp, identity_id=identity_id, target_ref=event_slug)

    attendee = find_attendee(db, event_id, identity_id, lock=True)
    if not attendee:
        if not settings.ATTENDANCE_AUTO_REGISTER:
            raise deny_scan(db, NotRegistered(f"{identity.username} is not registered for {event_slug}"),
                            card_id=card_id, timestamp=timestamp, identity_id=identity_id, event_id=event_id,
                            target_ref=event_slug)
        attendee = Attendee(event_id=event_id, identity_id=identity_id, total_duration=0,
                            is_eligible=False, registered_at=timestamp)
        db.add(attendee)
        db.flush()
        logger.info(f"[ATTENDANCE] Auto-registered {identity.username} for {event_slug}")

    open_session = (
        db.query(AttendanceSession)
        .filter(AttendanceSession.attendee_id == attendee.id, AttendanceSession.ended_at.is_(None))
        .with_for_update()
        .first()
    )
    transition = tap(state_of(open_session is not None))
    duration = None

    if transition.action is ScanAction.ENTER:
        session = AttendanceSession(attendee_id=attendee.id, started_at=timestamp)
        db.add(session)
        db.flush()
    else:
        session = open_session
        if timestamp < session.started_at:
            raise deny_scan(db, ClockSkew(), card_id=card_id, timestamp=timestamp,
                            identity_id=identity_id, event_id=event_id, target_ref=event_slug)
        duration = timestamp - session.started_at
        session.ended_at = timestamp
        session.duration = duration
        db.flush()
        attendee.total_duration = _closed_duration_total(db, attendee.id)
        attendee.is_eligible = is_eligible(attendee.total_duration, event.minimum_attendance_minutes)

    record_access_event(db, card_id=card_id, identity_id=identity_id, event_id=event_id,
                        action=transition.action, success=True, timestamp=timestamp,
                        target_ref=event_slug)

    result = ToggleSessionResult(
        action=_ACTION_LABELS[transition.action],
        session_id=session.id,
        duration=duration,
        total_duration=attendee.total_duration or 0,
        is_eligible=bool(attendee.is_eligible),
        timestamp=timestamp,
    )
    db.commit()

    if duration is None:
        logger.info(f"[ATTENDANCE] {identity.username} checked in to {event_slug}")
    else:
        logger.info(f"[ATTENDANCE] {identity.username} checked out of {event_slug} after "
                    f"{ms_to_minutes(duration)} min, total {ms_to_minutes(result.total_duration)} min, "
                    f"eligible={result.is_eligible}")
    return result


def register_attendee(db: Session, event_slug: str, username: str, now: Optional[int] = None) -> Attendee:
    now = now if now is not None else now_ms()
    event = get_event_by_slug(db, event_slug)
    if not event:
        raise EventNotFound(f"Event '{event_slug}' not found")
    identity = get_identity(db, username)

    if event.start_date < now:
        raise EventAlreadyStarted("Cannot register for past events")
    if find_attendee(db, event.id, identity.id):
        raise AlreadyRegistered(f"{username} is already registered for {event_slug}")

    attendee = Attendee(event_id=event.id, identity_id=identity.id, total_duration=0,
                        is_eligible=False, registered_at=now)
    db.add(attendee)
    db.commit()
    db.refresh(attendee)
    logger.info(f"[ATTENDANCE] {username} registered for {event_slug}")
    return attendee


def unregister_attendee(db: Session, event_slug: str, username: str, now: Optional[int] = None) -> dict:
    """
    Removes a registration together with all of its attendance sessions.
    Sessions go first, then the attendee, in a single commit.
    """
    now = now if now is not None else now_ms()
    event = get_event_by_slug(db, event_slug)
    if not event:
        raise EventNotFound(f"Event '{event_slug}' not found")
    identity = get_identity(db, username)
    attendee = find_attendee(db, event.id, identity.id, lock=True)
    if not attendee:
        raise NotRegistered(f"{username} is not registered for {event_slug}")
    if event.start_date < now:
        raise EventAlreadyStarted("Cannot unregister from an event that has already started")

    try:
        removed = (db.query(AttendanceSession)
                   .filter(AttendanceSession.attendee_id == attendee.id)
                   .delete(synchronize_session=False))
        db.delete(attendee)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"[ATTENDANCE] Unregistration of {username} from {event_slug} failed, rolled back",
                     exc_info=True)
        raise

    logger.info(f"[ATTENDANCE] {username} unregistered from {event_slug} ({removed} session(s) removed)")
    return {"status": "unregistered", "event": event_slug, "username": username, "sessions_removed": removed}
