# presence/models/facility.py
"""Physical rooms people tap in and out of."""

from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean
from presence.database import Base


class Facility(Base):
    __tablename__ = "facilities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), unique=True, nullable=False, index=True)
    description = Column(Text)
    location = Column(String(200))
    capacity = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)

    def __repr__(self):
        return f"<Facility {self.id} {self.name} cap={self.capacity} active={self.is_active}>"
