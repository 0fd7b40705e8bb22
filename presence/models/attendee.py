# presence/models/attendee.py
"""
Event registrations.
total_duration is the sum of closed attendance_sessions durations (ms);
both it and is_eligible change only when a session closes.
"""

from sqlalchemy import Column, Integer, BigInteger, Boolean, UniqueConstraint
from presence.database import Base


class Attendee(Base):
    __tablename__ = "event_attendees"
    __table_args__ = (UniqueConstraint("event_id", "identity_id", name="uq_event_attendees_event_identity"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(Integer, nullable=False, index=True)      # events.id
    identity_id = Column(Integer, nullable=False, index=True)   # identities.id
    total_duration = Column(BigInteger, default=0, nullable=False)
    is_eligible = Column(Boolean, default=False, nullable=False)
    registered_at = Column(BigInteger)                          # epoch ms

    def __repr__(self):
        return f"<Attendee {self.id} event={self.event_id} total={self.total_duration} eligible={self.is_eligible}>"
