# presence/models/facility_session.py
"""
One row per stay inside a facility (check-in to check-out).
The row id is the session id kept in the occupancy snapshot.
Closed rows feed the usage history endpoint.
"""

from sqlalchemy import Column, Integer, BigInteger, Boolean, Index, text
from presence.database import Base


class FacilitySession(Base):
    __tablename__ = "facility_sessions"
    __table_args__ = (
        # A card can hold at most one active stay per facility
        Index(
            "uq_facility_sessions_active",
            "identity_id", "facility_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    identity_id = Column(Integer, nullable=False, index=True)    # identities.id
    facility_id = Column(Integer, nullable=False, index=True)    # facilities.id
    time_in = Column(BigInteger, nullable=False, index=True)     # epoch ms
    time_out = Column(BigInteger)                                # epoch ms, set on exit
    duration = Column(BigInteger)                                # ms, set on exit
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<FacilitySession {self.id} identity={self.identity_id} active={self.is_active}>"
