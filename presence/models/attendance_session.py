# presence/models/attendance_session.py
"""
Check-in to check-out intervals of an attendee at an event.
ended_at stays NULL while the attendee is inside; at most one such row per attendee.
"""

from sqlalchemy import Column, Integer, BigInteger, Index, text
from presence.database import Base


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"
    __table_args__ = (
        Index(
            "uq_attendance_sessions_open",
            "attendee_id",
            unique=True,
            postgresql_where=text("ended_at IS NULL"),
            sqlite_where=text("ended_at IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    attendee_id = Column(Integer, nullable=False, index=True)   # event_attendees.id
    started_at = Column(BigInteger, nullable=False, index=True) # epoch ms
    ended_at = Column(BigInteger)                               # epoch ms
    duration = Column(BigInteger)                               # ms, set on check-out

    def __repr__(self):
        return f"<AttendanceSession {self.id} attendee={self.attendee_id} open={self.ended_at is None}>"
