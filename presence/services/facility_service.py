# presence/services/facility_service.py
"""
Facility management and usage history.
Used by the facilities router; occupancy itself lives in occupancy_service.
"""

import math
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session
from presence.models.facility import Facility
from presence.models.facility_session import FacilitySession
from presence.models.occupancy_snapshot import OccupancySnapshot
from presence.models.identity import AccessIdentity
from presence.schemas.facility import (
    FacilityCreate, FacilityUpdate, FacilityOut, FacilitySessionOut, PageMeta, UsageHistoryOut, FacilityStatusOut,
)
from presence.exceptions import FacilityNotFound, FacilityNameTaken, CapacityBelowOccupancy
from presence.config import settings
from presence.utils.timeutil import now_ms
from presence.utils.logger import get_logger

logger = get_logger(__name__)


def get_facility(db: Session, facility_id: int) -> Facility:
    facility = db.query(Facility).filter(Facility.id == facility_id).first()
    if not facility:
        raise FacilityNotFound(f"Facility {facility_id} not found")
    return facility


def list_facilities(db: Session, active_only: bool = False):
    q = db.query(Facility)
    if active_only:
        q = q.filter(Facility.is_active == True)  # noqa: E712
    return q.order_by(Facility.name).all()


def create_facility(db: Session, body: FacilityCreate) -> Facility:
    if db.query(Facility).filter(Facility.name == body.name).first():
        raise FacilityNameTaken(f"A facility named '{body.name}' already exists")

    now = datetime.utcnow()
    facility = Facility(name=body.name, description=body.description, location=body.location,
                        capacity=body.capacity or 0, is_active=True, created_at=now, updated_at=now)
    db.add(facility)
    db.flush()
    db.add(OccupancySnapshot(facility_id=facility.id, current_count=0, max_capacity=facility.capacity,
                             active_sessions=[], last_updated=now_ms()))
    db.commit()
    db.refresh(facility)
    logger.info(f"Facility created: {facility.name} (capacity {facility.capacity})")
    return facility


def update_facility(db: Session, facility_id: int, body: FacilityUpdate) -> Facility:
    facility = get_facility(db, facility_id)
    changes = body.model_dump(exclude_unset=True)

    new_name = changes.get("name")
    if new_name and new_name != facility.name:
        if db.query(Facility).filter(Facility.name == new_name).first():
            raise FacilityNameTaken(f"A facility named '{new_name}' already exists")

    snapshot = None
    if "capacity" in changes:
        # same row lock as record_scan, so no entry can slip in between check and write
        snapshot = (
            db.query(OccupancySnapshot)
            .filter(OccupancySnapshot.facility_id == facility_id)
            .with_for_update()
            .first()
        )
        inside = snapshot.current_count if snapshot else 0
        if changes["capacity"] < inside:
            db.rollback()
            raise CapacityBelowOccupancy(
                f"Facility {facility_id} has {inside} people inside, capacity cannot drop to {changes['capacity']}"
            )

    for field, value in changes.items():
        setattr(facility, field, value)
    facility.updated_at = datetime.utcnow()

    if snapshot:
        snapshot.max_capacity = facility.capacity
    db.commit()
    db.refresh(facility)
    return facility


def _session_out(stay: FacilitySession, usernames: dict) -> FacilitySessionOut:
    return FacilitySessionOut(
        id=stay.id,
        identity_id=stay.identity_id,
        username=usernames.get(stay.identity_id),
        facility_id=stay.facility_id,
        time_in=stay.time_in,
        time_out=stay.time_out,
        is_active=stay.is_active,
        duration=stay.duration,
    )


def get_usage_history(db: Session, facility_id: int, page: int = 1, limit: int = 20,
                      include_active: bool = True, start_date: Optional[int] = None,
                      end_date: Optional[int] = None) -> UsageHistoryOut:
    """Stays in a facility, newest first, paginated. Date bounds filter on time_in."""
    get_facility(db, facility_id)
    limit = max(1, min(limit or 20, settings.HISTORY_PAGE_SIZE_MAX))
    page = max(1, page or 1)

    q = db.query(FacilitySession).filter(FacilitySession.facility_id == facility_id)
    if start_date is not None:
        q = q.filter(FacilitySession.time_in >= start_date)
    if end_date is not None:
        q = q.filter(FacilitySession.time_in <= end_date)
    if not include_active:
        q = q.filter(FacilitySession.is_active == False)  # noqa: E712

    total = q.count()
    stays = (q.order_by(FacilitySession.time_in.desc(), FacilitySession.id.desc())
             .offset((page - 1) * limit).limit(limit).all())

    ids = {s.identity_id for s in stays}
    usernames = {}
    if ids:
        usernames = dict(db.query(AccessIdentity.id, AccessIdentity.username).filter(AccessIdentity.id.in_(ids)).all())

    total_pages = math.ceil(total / limit)
    return UsageHistoryOut(
        data=[_session_out(s, usernames) for s in stays],
        meta=PageMeta(total=total, page=page, limit=limit, total_pages=total_pages,
                      has_next=page < total_pages, has_prev=page > 1),
    )


def get_open_status(db: Session) -> FacilityStatusOut:
    """Whether the first active facility has anyone inside."""
    facility = (db.query(Facility).filter(Facility.is_active == True)  # noqa: E712
                .order_by(Facility.id).first())
    if not facility:
        return FacilityStatusOut(facility=None, is_open=False, active_sessions_count=0)

    count = db.query(FacilitySession).filter(
        FacilitySession.facility_id == facility.id,
        FacilitySession.is_active == True,  # noqa: E712
    ).count()
    return FacilityStatusOut(facility=FacilityOut.model_validate(facility), is_open=count > 0,
                             active_sessions_count=count)
