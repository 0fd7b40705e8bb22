# presence/models/access_event.py
"""
Append-only audit log of every RFID tap, successful or denied.
Target is either a facility or an event. Rows are never updated or deleted;
the autoincrement id is the observable scan order.
"""

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Boolean
from presence.database import Base


class AccessEvent(Base):
    __tablename__ = "access_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    card_id = Column(String(100), index=True)
    identity_id = Column(Integer, index=True)       # NULL when the card is unknown
    facility_id = Column(Integer, index=True)       # set for facility taps
    event_id = Column(Integer, index=True)          # set for event taps
    target_ref = Column(String(100))                # slug the tap was aimed at, kept when it matched nothing
    action = Column(String(20), nullable=False)     # enter | exit | denied
    success = Column(Boolean, nullable=False)
    reason = Column(String(100))                    # error code or manual_reset
    timestamp = Column(BigInteger, nullable=False, index=True)   # epoch ms
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<AccessEvent {self.id} action={self.action} success={self.success}>"
