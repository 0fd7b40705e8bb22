# presence/models/event.py
"""Events with RFID attendance. Looked up by slug."""

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Text
from presence.database import Base


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(200), unique=True, nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    start_date = Column(BigInteger, nullable=False, index=True)   # epoch ms
    end_date = Column(BigInteger)                                 # epoch ms
    minimum_attendance_minutes = Column(Integer)
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<Event {self.slug} min={self.minimum_attendance_minutes}>"
