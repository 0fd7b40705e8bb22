# presence/services/occupancy_service.py
"""
Facility occupancy ledger.
Input: RFID tap (card_id) at a facility reader.

How it works:
  - The card is resolved to an identity and the facility's occupancy snapshot is
    read FOR UPDATE (created empty on first tap).
  - Membership in the snapshot's active sessions gives the presence state; the
    tap toggles it: OUT -> enter (capacity checked), IN -> exit.
  - The facility_sessions row, the snapshot and the access_events row are
    written and committed together, so one tap is one transaction.
  - Any rejection rolls the tap back and logs a denied access event instead.

The snapshot is the stored source for reads; get_occupancy never folds the log.
"""

from typing import Optional
from sqlalchemy.orm import Session
from presence.models.facility import Facility
from presence.models.facility_session import FacilitySession
from presence.models.occupancy_snapshot import OccupancySnapshot
from presence.models.identity import AccessIdentity
from presence.schemas.access_event import AccessEventOut
from presence.schemas.occupancy import OccupancyOut, ActiveSessionOut, ScanResult
from presence.services.identity_service import lookup_identity_by_card
from presence.services.access_log_service import record_access_event, deny_scan
from presence.services.alert_service import create_alert
from presence.services.presence_state import ScanAction, state_of, tap
from presence.exceptions import (
    UnknownCard, FacilityNotFound, FacilityInactive, CapacityExceeded, AlreadyCheckedIn, ClockSkew,
)
from presence.config import settings
from presence.utils.timeutil import now_ms, ms_to_minutes
from presence.utils.logger import get_logger

logger = get_logger(__name__)


def _lock_snapshot(db: Session, facility: Facility) -> OccupancySnapshot:
    snapshot = (
        db.query(OccupancySnapshot)
        .filter(OccupancySnapshot.facility_id == facility.id)
        .with_for_update()
        .first()
    )
    if not snapshot:
        snapshot = OccupancySnapshot(facility_id=facility.id, current_count=0,
                                     max_capacity=facility.capacity or 0, active_sessions=[])
        db.add(snapshot)
    return snapshot


def _occupancy_out(db: Session, facility: Facility, snapshot: Optional[OccupancySnapshot]) -> OccupancyOut:
    capacity = facility.capacity or 0
    entries = list(snapshot.active_sessions or []) if snapshot else []
    current = len(entries)

    usernames = {}
    if entries:
        ids = {e["identity_id"] for e in entries}
        rows = db.query(AccessIdentity.id, AccessIdentity.username).filter(AccessIdentity.id.in_(ids)).all()
        usernames = {row.id: row.username for row in rows}

    sessions = [
        ActiveSessionOut(identity_id=e["identity_id"], username=usernames.get(e["identity_id"]),
                         session_id=e["session_id"], time_in=e["time_in"])
        for e in sorted(entries, key=lambda e: e["time_in"], reverse=True)
    ]
    return OccupancyOut(
        facility_id=facility.id,
        current=current,
        max=capacity,
        available=max(0, capacity - current),
        percentage=round((current / capacity) * 100, 1) if capacity else 0,
        is_full=current >= capacity,
        last_updated=snapshot.last_updated if snapshot else None,
        active_sessions=sessions,
    )


async def record_scan(db: Session, card_id: str, facility_id: int, timestamp: Optional[int] = None) -> ScanResult:
    timestamp = timestamp if timestamp is not None else now_ms()

    identity = lookup_identity_by_card(db, card_id)
    if not identity:
        raise deny_scan(db, UnknownCard(), card_id=card_id, timestamp=timestamp, facility_id=facility_id)
    identity_id = identity.id

    facility = db.query(Facility).filter(Facility.id == facility_id).first()
    if not facility:
        raise deny_scan(db, FacilityNotFound(f"Facility {facility_id} not found"), card_id=card_id,
                        timestamp=timestamp, identity_id=identity_id, facility_id=facility_id)
    if not facility.is_active:
        raise deny_scan(db, FacilityInactive(f"{facility.name} is not active"), card_id=card_id,
                        timestamp=timestamp, identity_id=identity_id, facility_id=facility_id)

    snapshot = _lock_snapshot(db, facility)
    active = list(snapshot.active_sessions or [])
    current = next((e for e in active if e["identity_id"] == identity_id), None)
    transition = tap(state_of(current is not None))
    duration = None

    if transition.action is ScanAction.ENTER:
        capacity = facility.capacity or 0
        if len(active) >= capacity:
            raise deny_scan(db, CapacityExceeded(f"Facility at capacity ({capacity})"), card_id=card_id,
                            timestamp=timestamp, identity_id=identity_id, facility_id=facility_id)

        if settings.SINGLE_FACILITY_PRESENCE:
            elsewhere = db.query(FacilitySession).filter(
                FacilitySession.identity_id == identity_id,
                FacilitySession.is_active == True,  # noqa: E712
                FacilitySession.facility_id != facility_id,
            ).first()
            if elsewhere:
                other = db.query(Facility).filter(Facility.id == elsewhere.facility_id).first()
                name = other.name if other else "another facility"
                raise deny_scan(db, AlreadyCheckedIn(f"Already checked in to {name}"), card_id=card_id,
                                timestamp=timestamp, identity_id=identity_id, facility_id=facility_id)

        stay = FacilitySession(identity_id=identity_id, facility_id=facility_id,
                               time_in=timestamp, is_active=True)
        db.add(stay)
        db.flush()
        active.append({"identity_id": identity_id, "session_id": stay.id, "time_in": timestamp})
        session_id = stay.id
    else:
        if timestamp < current["time_in"]:
            raise deny_scan(db, ClockSkew(), card_id=card_id, timestamp=timestamp,
                            identity_id=identity_id, facility_id=facility_id)
        duration = timestamp - current["time_in"]
        session_id = current["session_id"]
        stay = db.query(FacilitySession).filter(FacilitySession.id == session_id).first()
        if stay:
            stay.time_out = timestamp
            stay.duration = duration
            stay.is_active = False
        else:
            logger.warning(f"[OCCUPANCY] Snapshot of facility {facility_id} references missing session {session_id}")
        active = [e for e in active if e["identity_id"] != identity_id]

    snapshot.active_sessions = active
    snapshot.current_count = len(active)
    snapshot.max_capacity = facility.capacity or 0
    snapshot.last_updated = timestamp

    access_event = record_access_event(db, card_id=card_id, identity_id=identity_id, facility_id=facility_id,
                                       action=transition.action, success=True, timestamp=timestamp)
    db.commit()

    occupancy = _occupancy_out(db, facility, snapshot)
    if transition.action is ScanAction.ENTER:
        logger.info(f"[OCCUPANCY] {identity.username} entered {facility.name}: "
                    f"{occupancy.current}/{occupancy.max}")
    else:
        logger.info(f"[OCCUPANCY] {identity.username} left {facility.name} after "
                    f"{ms_to_minutes(duration)} min: {occupancy.current}/{occupancy.max}")

    if (transition.action is ScanAction.ENTER and occupancy.max
            and occupancy.current / occupancy.max >= settings.OCCUPANCY_ALERT_THRESHOLD):
        await create_alert(db, "occupancy_high", facility_id,
                           f"{facility.name} at {int(occupancy.percentage)}% capacity")

    return ScanResult(
        action=transition.action.value,
        occupancy=occupancy,
        access_event=AccessEventOut.model_validate(access_event),
        session_id=session_id,
        duration=duration,
    )


def get_occupancy(db: Session, facility_id: int) -> OccupancyOut:
    """Current count, capacity and who is inside. Read-only."""
    facility = db.query(Facility).filter(Facility.id == facility_id).first()
    if not facility:
        raise FacilityNotFound(f"Facility {facility_id} not found")
    snapshot = db.query(OccupancySnapshot).filter(OccupancySnapshot.facility_id == facility_id).first()
    return _occupancy_out(db, facility, snapshot)


def list_occupancy(db: Session):
    facilities = db.query(Facility).order_by(Facility.id).all()
    snapshots = {s.facility_id: s for s in db.query(OccupancySnapshot).all()}
    return [_occupancy_out(db, f, snapshots.get(f.id)) for f in facilities]


def reset_occupancy(db: Session, facility_id: int, timestamp: Optional[int] = None) -> OccupancyOut:
    """
    Operator override after miscounts: closes every active stay in the facility
    and empties the snapshot. Each closed stay is logged as an exit with reason
    manual_reset.
    """
    timestamp = timestamp if timestamp is not None else now_ms()
    facility = db.query(Facility).filter(Facility.id == facility_id).first()
    if not facility:
        raise FacilityNotFound(f"Facility {facility_id} not found")

    snapshot = _lock_snapshot(db, facility)
    stays = db.query(FacilitySession).filter(
        FacilitySession.facility_id == facility_id,
        FacilitySession.is_active == True,  # noqa: E712
    ).all()
    for stay in stays:
        stay.time_out = max(timestamp, stay.time_in)
        stay.duration = stay.time_out - stay.time_in
        stay.is_active = False
        record_access_event(db, card_id=None, identity_id=stay.identity_id, facility_id=facility_id,
                            action=ScanAction.EXIT, success=True, reason="manual_reset", timestamp=timestamp)

    snapshot.active_sessions = []
    snapshot.current_count = 0
    snapshot.max_capacity = facility.capacity or 0
    snapshot.last_updated = timestamp
    db.commit()
    logger.warning(f"[OCCUPANCY] {facility.name} reset, {len(stays)} session(s) closed")
    return _occupancy_out(db, facility, snapshot)
