# presence/schemas/identity.py
from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class IdentityCreate(BaseModel):
    username: str
    card_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None


class CardAssign(BaseModel):
    card_id: str


class IdentityOut(BaseModel):
    id: int
    username: str
    card_id: Optional[str]
    first_name: Optional[str]
    last_name: Optional[str]
    email: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
