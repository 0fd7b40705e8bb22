# presence/schemas/access_event.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class ScanRequest(BaseModel):
    card_id: str
    timestamp: Optional[int] = None   # epoch ms, defaults to now


class AccessEventOut(BaseModel):
    id: int
    card_id: Optional[str]
    identity_id: Optional[int]
    facility_id: Optional[int]
    event_id: Optional[int]
    target_ref: Optional[str] = None
    action: str
    success: bool
    reason: Optional[str]
    timestamp: int
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
