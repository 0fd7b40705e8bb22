# presence/schemas/facility.py
from pydantic import BaseModel, field_validator
from datetime import datetime
from typing import List, Optional


class FacilityCreate(BaseModel):
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = None


class FacilityUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = None
    is_active: Optional[bool] = None

    @field_validator("name", "capacity", "is_active")
    @classmethod
    def not_null(cls, v, info):
        # omit a field to leave it unchanged; null is not a value for these columns
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class FacilityOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    location: Optional[str]
    capacity: int
    is_active: bool
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class FacilitySessionOut(BaseModel):
    id: int
    identity_id: int
    username: Optional[str] = None
    facility_id: int
    time_in: int
    time_out: Optional[int]
    is_active: bool
    duration: Optional[int]


class PageMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


class UsageHistoryOut(BaseModel):
    data: List[FacilitySessionOut]
    meta: PageMeta


class FacilityStatusOut(BaseModel):
    facility: Optional[FacilityOut]
    is_open: bool
    active_sessions_count: int
