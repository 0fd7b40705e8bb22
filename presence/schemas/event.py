# presence/schemas/event.py
from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional


class EventCreate(BaseModel):
    slug: str
    title: str
    description: Optional[str] = None
    start_date: int                  # epoch ms
    end_date: Optional[int] = None
    minimum_attendance_minutes: Optional[int] = None


class EventOut(BaseModel):
    id: int
    slug: str
    title: str
    description: Optional[str]
    start_date: int
    end_date: Optional[int]
    minimum_attendance_minutes: Optional[int]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class RegistrationRequest(BaseModel):
    username: str


class AttendeeOut(BaseModel):
    id: int
    event_id: int
    identity_id: int
    username: Optional[str] = None
    total_duration: int
    is_eligible: bool
    registered_at: Optional[int]


class ToggleSessionResult(BaseModel):
    action: str                      # check-in | check-out
    session_id: int
    duration: Optional[int] = None   # ms of the session just closed
    total_duration: int
    is_eligible: bool
    timestamp: int


class EventSessionOut(BaseModel):
    id: int
    attendee_id: int
    username: Optional[str] = None
    started_at: int
    ended_at: Optional[int]
    duration: Optional[int]


class EventSessionsOut(BaseModel):
    sessions: List[EventSessionOut]
    total_sessions: int
    active_sessions: int
    completed_sessions: int
    total_duration: int
