# presence/schemas/occupancy.py
from pydantic import BaseModel
from typing import List, Optional

from presence.schemas.access_event import AccessEventOut


class ActiveSessionOut(BaseModel):
    identity_id: int
    username: Optional[str] = None
    session_id: int
    time_in: int


class OccupancyOut(BaseModel):
    facility_id: int
    current: int
    max: int
    available: int
    percentage: float
    is_full: bool
    last_updated: Optional[int] = None
    active_sessions: List[ActiveSessionOut] = []


class ScanResult(BaseModel):
    action: str                         # enter | exit
    occupancy: OccupancyOut
    access_event: AccessEventOut
    session_id: int
    duration: Optional[int] = None      # ms, exit only
