# presence/models/identity.py
"""
Card holders (AccessIdentity).
One row per person, keyed by username and by the RFID card they carry.
A card is revoked by clearing card_id; the row itself is never deleted.
"""

from sqlalchemy import Column, Integer, String, DateTime
from presence.database import Base


class AccessIdentity(Base):
    __tablename__ = "identities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    card_id = Column(String(100), unique=True, index=True)   # NULL once revoked
    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(200))
    created_at = Column(DateTime)

    def __repr__(self):
        return f"<AccessIdentity {self.username} card={self.card_id}>"
