# presence/services/access_log_service.py
"""
Append-only access log.
Successful scans add their row inside the caller's transaction (commit=False);
denied scans are written on their own after the caller's work is rolled back,
so the audit trail keeps every attempt.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from presence.models.access_event import AccessEvent
from presence.services.presence_state import ScanAction
from presence.exceptions import PresenceError
from presence.utils.logger import get_logger

logger = get_logger(__name__)


def record_access_event(db: Session, *, card_id, identity_id, action, success, timestamp,
                        facility_id=None, event_id=None, target_ref=None, reason=None, commit=False) -> AccessEvent:
    access_event = AccessEvent(
        card_id=card_id,
        identity_id=identity_id,
        facility_id=facility_id,
        event_id=event_id,
        target_ref=target_ref,
        action=ScanAction(action).value,
        success=success,
        reason=reason,
        timestamp=timestamp,
        created_at=datetime.utcnow(),
    )
    db.add(access_event)
    if commit:
        db.commit()
    else:
        db.flush()
    return access_event


def deny_scan(db: Session, error: PresenceError, *, card_id, timestamp,
              identity_id=None, facility_id=None, event_id=None, target_ref=None) -> PresenceError:
    """
    Discard the pending scan, persist a failed AccessEvent and hand the error back
    to be raised. The caller's state rows are left exactly as they were.
    """
    db.rollback()
    record_access_event(
        db,
        card_id=card_id,
        identity_id=identity_id,
        facility_id=facility_id,
        event_id=event_id,
        target_ref=target_ref,
        action=ScanAction.DENIED,
        success=False,
        reason=error.code,
        timestamp=timestamp,
        commit=True,
    )
    target = f"facility={facility_id}" if facility_id is not None else f"event={event_id or target_ref}"
    logger.warning(f"[DENIED] card={card_id} {target} reason={error.code}: {error.message}")
    return error


def list_access_events(db: Session, facility_id: Optional[int] = None, event_id: Optional[int] = None,
                       identity_id: Optional[int] = None, success: Optional[bool] = None, limit: int = 50):
    """Newest first, in insertion order."""
    q = db.query(AccessEvent)
    if facility_id is not None:
        q = q.filter(AccessEvent.facility_id == facility_id)
    if event_id is not None:
        q = q.filter(AccessEvent.event_id == event_id)
    if identity_id is not None:
        q = q.filter(AccessEvent.identity_id == identity_id)
    if success is not None:
        q = q.filter(AccessEvent.success == success)
    return q.order_by(AccessEvent.id.desc()).limit(limit).all()
